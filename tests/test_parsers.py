# ruff: noqa: E501
from __future__ import annotations

import textwrap
from datetime import date
from decimal import Decimal

import pytest

from ledger_ingest.ingest.adapters import (
    AmexHysParser,
    ChaseCheckingParser,
    ChaseCreditParser,
    Fidelity401kParser,
    RobinhoodParser,
)
from ledger_ingest.ingest.utils import (
    parse_amount,
    parse_csv_lines,
    parse_iso_date,
    parse_records,
    parse_us_date,
)
from ledger_ingest.models import RawParsedRow


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


# ---- Field parsers ------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("-42.50", Decimal("-42.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("($371.00)", Decimal("-371.00")),
        ("$(1.00)", Decimal("-1.00")),
        ("+7", Decimal("7")),
        (" 0.42 ", Decimal("0.42")),
    ],
)
def test_parse_amount(raw: str, expected: Decimal):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "$", "abc", "NaN", "Infinity", "()"])
def test_parse_amount_rejects(raw: str | None):
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_parse_us_date_two_digit_year_pivot():
    assert parse_us_date("1/5/05") == date(2005, 1, 5)
    assert parse_us_date("1/5/85") == date(1985, 1, 5)
    assert parse_us_date("1/5/49") == date(2049, 1, 5)
    assert parse_us_date("1/5/50") == date(1950, 1, 5)
    assert parse_us_date("12/31/2025") == date(2025, 12, 31)
    assert parse_us_date("2/13/2026 12:00:00 AM") == date(2026, 2, 13)


@pytest.mark.parametrize("raw", ["", "2026-01-05", "13/1/2026", "2/30/2026", "1/x/2026"])
def test_parse_us_date_rejects(raw: str):
    with pytest.raises(ValueError):
        parse_us_date(raw)


def test_parse_iso_date():
    assert parse_iso_date("2026-01-26") == date(2026, 1, 26)
    with pytest.raises(ValueError):
        parse_iso_date("01/26/2026")


def test_line_tokenizer_isolates_damage_to_one_line():
    records = parse_csv_lines('a,"b,c",d\n\n  \ne,"f ""q"" g",h\n')
    assert [r.fields for r in records] == [["a", "b,c", "d"], ["e", 'f "q" g', "h"]]
    assert [r.line for r in records] == [1, 4]


def test_record_tokenizer_follows_quotes_across_lines_and_detects_tabs():
    records = parse_records('x\ty\n"multi\nline"\t2\n\t\n')
    assert [r.fields for r in records] == [["x", "y"], ["multi\nline", "2"]]


# ---- Chase checking -----------------------------------------------------------

CHASE_CHECKING = _dedent(
    """
    Details,Posting Date,Description,Amount,Type,Balance,Check or Slip #
    DEBIT,01/15/2026,"GROCERY STORE #12, SEATTLE",-42.50,DEBIT_CARD,1000.00,,
    CREDIT,01/16/26,PAYROLL ACME,2500.00,ACH_CREDIT,3500.00,,
    DEBIT,02/30/2026,BAD DATE,-1.00,DEBIT_CARD,,,
    DEBIT,01/17/2026,NO AMOUNT,,DEBIT_CARD,,,
    SHORT,01/17/2026
    """
)


def test_chase_checking():
    rows = ChaseCheckingParser().parse(CHASE_CHECKING)
    assert rows == [
        RawParsedRow(date(2026, 1, 15), "GROCERY STORE #12, SEATTLE", Decimal("-42.50")),
        RawParsedRow(date(2026, 1, 16), "PAYROLL ACME", Decimal("2500.00")),
    ]


def test_bom_and_blank_lines_are_ignored():
    rows = ChaseCheckingParser().parse("\ufeff" + CHASE_CHECKING.replace("\n", "\r\n\r\n"))
    assert len(rows) == 2


def test_header_only_and_empty_input_yield_nothing():
    header = CHASE_CHECKING.splitlines()[0]
    assert ChaseCheckingParser().parse(header) == []
    assert ChaseCheckingParser().parse("") == []
    assert RobinhoodParser().parse("") == []


# ---- Chase credit -------------------------------------------------------------


def test_chase_credit_carries_bank_category():
    content = _dedent(
        """
        Transaction Date,Post Date,Description,Category,Type,Amount,Memo
        01/14/2026,01/15/2026,STARBUCKS STORE 123,Food & Drink,Sale,-5.75,
        01/10/2026,01/11/2026,Payment Thank You,,Payment,500.00,
        """
    )
    rows = ChaseCreditParser().parse(content)
    assert rows == [
        RawParsedRow(date(2026, 1, 14), "STARBUCKS STORE 123", Decimal("-5.75"), "Food & Drink"),
        RawParsedRow(date(2026, 1, 10), "Payment Thank You", Decimal("500.00"), None),
    ]


def test_two_digit_years_expand_around_pivot():
    content = _dedent(
        """
        Transaction Date,Post Date,Description,Category,Type,Amount,Memo
        01/05/05,01/06/05,OLD SHOP,Shopping,Sale,-1.00,
        01/05/85,01/06/85,OLDER SHOP,Shopping,Sale,-2.00,
        """
    )
    rows = ChaseCreditParser().parse(content)
    assert [r.date for r in rows] == [date(2005, 1, 5), date(1985, 1, 5)]


def test_malformed_rows_are_dropped_without_failing_the_file():
    lines = ["Transaction Date,Post Date,Description,Category,Type,Amount,Memo"]
    for i in range(10):
        amount = "" if i in (3, 7) else f"-{i + 1}.00"
        lines.append(f"01/{i + 1:02d}/2026,01/{i + 1:02d}/2026,SHOP {i},Shopping,Sale,{amount},")
    rows = ChaseCreditParser().parse("\n".join(lines))
    assert len(rows) == 8
    assert {r.description for r in rows}.isdisjoint({"SHOP 3", "SHOP 7"})


# ---- Amex HYS -----------------------------------------------------------------


def test_amex_hys_has_no_header():
    content = '2026-01-26,"Interest Payment",430.74\n2026-01-02,"Transfer from Checking","1,000.00"\n'
    rows = AmexHysParser().parse(content)
    assert rows == [
        RawParsedRow(date(2026, 1, 26), "Interest Payment", Decimal("430.74")),
        RawParsedRow(date(2026, 1, 2), "Transfer from Checking", Decimal("1000.00")),
    ]


def test_amex_hys_tolerates_header_and_bom():
    content = "\ufeffDate,Description,Amount\n2026-01-26,Interest Payment,430.74\n"
    rows = AmexHysParser().parse(content)
    assert rows == [RawParsedRow(date(2026, 1, 26), "Interest Payment", Decimal("430.74"))]


# ---- Fidelity 401k ------------------------------------------------------------


def test_fidelity_401k_derives_description():
    content = _dedent(
        """
        "Transaction Date","Investment","Contribution","Description","Activity","Price","Units","Amount",
        "2/13/2026 12:00:00 AM","Cash","Employee 401(k)","Contributions - Employee","Cash Receipts","1.000000","0.000000000","579.97",
        "2/14/2026 12:00:00 AM","VANGUARD TARGET 2055","Employee 401(k)","Buy","Purchases","52.340000","11.081000000","-579.97",
        "2/15/2026 12:00:00 AM","VANGUARD TARGET 2055","","Fee","","","","-3.50",
        """
    )
    rows = Fidelity401kParser().parse(content)
    assert [r.description for r in rows] == [
        "Cash — Employee 401(k) — Cash Receipts",
        "VANGUARD TARGET 2055 — Employee 401(k) — Purchases — 11.081 units @ $52.34",
        "VANGUARD TARGET 2055",
    ]
    assert [r.bank_category for r in rows] == ["Cash Receipts", "Purchases", None]
    assert [r.amount for r in rows] == [Decimal("579.97"), Decimal("-579.97"), Decimal("-3.50")]
    assert rows[0].date == date(2026, 2, 13)


# ---- Robinhood ----------------------------------------------------------------


def test_robinhood_tsv_multiline_and_accounting_amounts():
    header = "Activity Date\tProcess Date\tSettle Date\tInstrument\tDescription\tTrans Code\tQuantity\tPrice\tAmount"
    content = "\n".join(
        [
            header,
            '1/15/26\t1/15/26\t1/17/26\tAAPL\t"Apple\nCUSIP: 037833100"\tBuy\t2\t$185.50\t($371.00)',
            "1/20/26\t1/20/26\t1/20/26\t\tACH Deposit\tACH\t\t\t$500.00",
            "1/22/26\t1/22/26\t1/22/26\tTSLA\tStock Split\tSPL\t10\t\t",
        ]
    )
    rows = RobinhoodParser().parse(content)
    assert rows == [
        RawParsedRow(date(2026, 1, 15), "AAPL Apple", Decimal("-371.00"), "Buy"),
        RawParsedRow(date(2026, 1, 20), "ACH Deposit", Decimal("500.00"), "ACH"),
    ]


def test_robinhood_csv_with_disclaimer_footer():
    content = _dedent(
        """
        "Activity Date","Process Date","Settle Date","Instrument","Description","Trans Code","Quantity","Price","Amount"
        "1/15/2026","1/15/2026","1/17/2026","AAPL","Apple","Buy","2","$185.50","($371.00)"
        "1/16/2026","1/16/2026","1/16/2026","","Interest Payment","INT","","","$0.42"
        ""
        "","","","","","","","",""
        "The data provided is for informational purposes only."
        """
    )
    rows = RobinhoodParser().parse(content)
    assert [(r.description, r.amount, r.bank_category) for r in rows] == [
        ("AAPL Apple", Decimal("-371.00"), "Buy"),
        ("Interest Payment", Decimal("0.42"), "INT"),
    ]
