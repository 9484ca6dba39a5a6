"""Tests for ownershipDocument extraction."""

import pytest

from conftest import ownership_xml, tx_xml
from insider_tracker.models import SkipReason
from insider_tracker.sec.parser import classify_role, extract_filing, map_transaction_code


class TestClassifyRole:
    def test_officer_title_wins_over_director(self):
        role = classify_role(is_officer=True, officer_title="CEO", is_director=True, is_ten_percent_owner=False)
        assert role == "CEO"

    def test_officer_flag_without_title_falls_through(self):
        role = classify_role(is_officer=True, officer_title=None, is_director=True, is_ten_percent_owner=False)
        assert role == "Director"

    def test_director_over_ten_percent_owner(self):
        role = classify_role(is_officer=False, officer_title="CEO", is_director=True, is_ten_percent_owner=True)
        assert role == "Director"

    def test_ten_percent_owner(self):
        role = classify_role(is_officer=False, officer_title=None, is_director=False, is_ten_percent_owner=True)
        assert role == "10% Owner"

    def test_other(self):
        role = classify_role(is_officer=False, officer_title=None, is_director=False, is_ten_percent_owner=False)
        assert role == "Other"


class TestTransactionCodes:
    @pytest.mark.parametrize(
        "code,expected",
        [
            ("P", ("Purchase", True)),
            ("S", ("Sale", False)),
            ("A", ("Grant", True)),
            ("M", ("Exercise", True)),
            ("F", ("Other", False)),
            ("G", ("Other", False)),
            (None, ("Other", False)),
        ],
    )
    def test_mapping(self, code, expected):
        assert map_transaction_code(code) == expected


class TestExtractFiling:
    def test_purchase_with_footnoted_price(self, cfg):
        res = extract_filing(ownership_xml(), cfg)

        assert res.ok
        f = res.filing
        assert f.issuer.ticker == "GILD"
        assert f.issuer.cik == "0000882095"
        assert f.issuer.name == "GILEAD SCIENCES, INC."
        assert f.party.cik == "0001234567"
        assert f.party.name == "Dickinson Andrew D"
        assert f.role == "CFO"
        assert len(f.transactions) == 1
        tx = f.transactions[0]
        assert tx.transaction_type == "Purchase"
        assert tx.is_purchase is True
        assert tx.shares == 2500
        assert tx.price_per_share == pytest.approx(118.08)
        assert tx.value == pytest.approx(295200.00)
        assert tx.ownership_after == 110000
        assert tx.transaction_date == "2024-03-01"

    def test_footnote_after_value_is_tolerated(self, cfg):
        xml = ownership_xml(rows=[tx_xml(price="10.50", price_footnote_first=False)])

        res = extract_filing(xml, cfg)

        assert res.filing.transactions[0].price_per_share == pytest.approx(10.5)

    def test_officer_title_role_wins_over_director_flag(self, cfg):
        xml = ownership_xml(is_officer="true", is_director="true", officer_title="CEO")

        res = extract_filing(xml, cfg)

        assert res.filing.role == "CEO"

    def test_grant_with_zero_price_is_kept(self, cfg):
        xml = ownership_xml(rows=[tx_xml(code="A", shares="100", price="0", date="2024-01-01")])

        res = extract_filing(xml, cfg)

        assert res.ok
        tx = res.filing.transactions[0]
        assert tx.transaction_type == "Grant"
        assert tx.is_purchase is True
        assert tx.price_per_share == 0
        assert tx.value == 0

    def test_missing_price_counts_as_zero(self, cfg):
        xml = ownership_xml(rows=[tx_xml(code="A", shares="100", price=None)])

        res = extract_filing(xml, cfg)

        assert res.filing.transactions[0].price_per_share == 0

    def test_zero_share_rows_are_dropped(self, cfg):
        xml = ownership_xml(
            rows=[
                tx_xml(shares="0", price="50.00"),
                tx_xml(shares="300", price="50.00", date="2024-03-02"),
            ]
        )

        res = extract_filing(xml, cfg)

        assert [t.shares for t in res.filing.transactions] == [300]

    def test_only_zero_share_rows_is_no_usable_data(self, cfg):
        xml = ownership_xml(rows=[tx_xml(shares="0", price="12.00", date="2024-01-01")])

        res = extract_filing(xml, cfg)

        assert not res.ok
        assert res.reason == SkipReason.NO_USABLE_TRANSACTIONS

    @pytest.mark.parametrize("shares", ["NaN", "inf", "-inf"])
    def test_non_finite_share_count_is_dropped(self, cfg, shares):
        xml = ownership_xml(rows=[tx_xml(shares=shares), tx_xml(shares="40", date="2024-03-04")])

        res = extract_filing(xml, cfg)

        assert [t.shares for t in res.filing.transactions] == [40]

    def test_non_finite_price_counts_as_zero(self, cfg):
        xml = ownership_xml(rows=[tx_xml(code="A", shares="100", price="NaN")])

        tx = extract_filing(xml, cfg).filing.transactions[0]

        assert tx.price_per_share == 0
        assert tx.value == 0

    def test_row_without_date_is_dropped(self, cfg):
        xml = ownership_xml(rows=[tx_xml(date=""), tx_xml(date="2024-03-04", shares="5")])

        res = extract_filing(xml, cfg)

        assert [t.transaction_date for t in res.filing.transactions] == ["2024-03-04"]

    def test_date_with_offset_is_normalized(self, cfg):
        xml = ownership_xml(rows=[tx_xml(date="2024-03-01-05:00")])

        res = extract_filing(xml, cfg)

        assert res.filing.transactions[0].transaction_date == "2024-03-01"

    def test_share_counts_with_commas(self, cfg):
        xml = ownership_xml(rows=[tx_xml(shares="1,250", price="4.00")])

        res = extract_filing(xml, cfg)

        assert res.filing.transactions[0].shares == 1250
        assert res.filing.transactions[0].value == pytest.approx(5000.0)

    def test_sale_row(self, cfg):
        xml = ownership_xml(rows=[tx_xml(code="S", shares="1000", price="20")])

        tx = extract_filing(xml, cfg).filing.transactions[0]

        assert tx.transaction_type == "Sale"
        assert tx.is_purchase is False

    def test_html_page_is_schema_mismatch(self, cfg):
        html = "<html><head><title>SEC.gov | Request Rate Threshold Exceeded</title></head><body></body></html>"

        res = extract_filing(html, cfg)

        assert not res.ok
        assert res.reason == SkipReason.SCHEMA_MISMATCH

    def test_malformed_xml_with_marker_is_schema_mismatch(self, cfg):
        res = extract_filing("<ownershipDocument><issuer>", cfg)

        assert res.reason == SkipReason.SCHEMA_MISMATCH
        assert "malformed" in res.detail

    def test_wrapped_document_is_found(self, cfg):
        wrapped = "<SEC-DOCUMENT><XML>" + ownership_xml().replace('<?xml version="1.0"?>', "") + "</XML></SEC-DOCUMENT>"

        res = extract_filing(wrapped, cfg)

        assert res.ok
        assert res.filing.issuer.ticker == "GILD"

    def test_namespaced_document(self, cfg):
        xml = ownership_xml().replace(
            "<ownershipDocument>", '<ownershipDocument xmlns="http://www.sec.gov/edgar/ownership">'
        )

        res = extract_filing(xml, cfg)

        assert res.ok
        assert res.filing.transactions[0].shares == 2500

    @pytest.mark.parametrize(
        "override,missing",
        [
            ({"ticker": ""}, "issuerTradingSymbol"),
            ({"issuer_cik": ""}, "issuerCik"),
            ({"owner_name": ""}, "rptOwnerName"),
            ({"owner_cik": ""}, "rptOwnerCik"),
        ],
    )
    def test_missing_identity_fields_are_no_usable_data(self, cfg, override, missing):
        res = extract_filing(ownership_xml(**override), cfg)

        assert not res.ok
        assert res.reason == SkipReason.NO_USABLE_TRANSACTIONS
        assert missing in res.detail

    def test_derivative_rows_are_ignored(self, cfg):
        xml = ownership_xml(rows=[tx_xml(shares="0")]).replace(
            "</nonDerivativeTable>",
            "</nonDerivativeTable><derivativeTable>"
            "<derivativeTransaction><transactionDate><value>2024-03-01</value></transactionDate>"
            "<transactionAmounts><transactionShares><value>500</value></transactionShares></transactionAmounts>"
            "</derivativeTransaction></derivativeTable>",
        )

        res = extract_filing(xml, cfg)

        assert res.reason == SkipReason.NO_USABLE_TRANSACTIONS
