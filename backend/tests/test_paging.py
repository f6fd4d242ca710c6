"""Listing page and sort parameters."""

from __future__ import annotations

import unittest

import support  # noqa: F401

from registro.utils.paging import PagingParamError, paginate, parse_paging_params

SORT_FIELDS = ("matricola", "cognome")


class ParsePagingParamsTestCase(unittest.TestCase):
    def test_defaults(self) -> None:
        paging = parse_paging_params({}, sort_fields=SORT_FIELDS, default_sort="cognome")

        self.assertEqual((1, 10, "cognome", False), (
            paging.page, paging.page_size, paging.sort_field, paging.descending
        ))

    def test_descending_sort(self) -> None:
        paging = parse_paging_params(
            {"sort": "-matricola", "page": "2", "page_size": "5"},
            sort_fields=SORT_FIELDS,
            default_sort="cognome",
        )

        self.assertEqual("-matricola", paging.sort)
        self.assertEqual((2, 5), (paging.page, paging.page_size))

    def test_invalid_values(self) -> None:
        for args in (
            {"page": "0"},
            {"page": "-1"},
            {"page": "uno"},
            {"page_size": "101"},
            {"sort": "nome"},
            {"sort": "--cognome"},
        ):
            with self.subTest(args=args):
                with self.assertRaises(PagingParamError):
                    parse_paging_params(args, sort_fields=SORT_FIELDS, default_sort="cognome")


class PaginateTestCase(unittest.TestCase):
    documents = [{"cognome": name} for name in ("Verdi", "Bianchi", "Rossi")]

    def _page(self, **args):
        paging = parse_paging_params(args, sort_fields=SORT_FIELDS, default_sort="cognome")
        return paginate(self.documents, paging)

    def test_sorted_slice(self) -> None:
        body = self._page(page_size="2")

        self.assertEqual(["Bianchi", "Rossi"], [d["cognome"] for d in body["items"]])
        self.assertTrue(body["has_next"])
        self.assertFalse(body["has_prev"])

    def test_page_clamped_to_last(self) -> None:
        body = self._page(page="9", page_size="2", sort="-cognome")

        self.assertEqual(2, body["page"])
        self.assertEqual(["Bianchi"], [d["cognome"] for d in body["items"]])
        self.assertEqual("-cognome", body["sort"])

    def test_empty_listing(self) -> None:
        paging = parse_paging_params({}, sort_fields=SORT_FIELDS, default_sort="cognome")

        body = paginate([], paging)

        self.assertEqual((1, 0, False), (body["page"], body["total"], body["has_next"]))


if __name__ == "__main__":
    unittest.main()
