from datetime import date, datetime, timezone

import pytest

from educafric.utils.formatting import ensure_utc, format_amount, format_date, serialize_dates
from educafric.utils.wa_link import build_wa_url, normalize_e164


class TestFormatAmount:
    def test_grouping_per_language(self):
        assert format_amount(50000) == "50\u202f000 XAF"
        assert format_amount(50000, "en") == "50,000 XAF"
        assert format_amount(1250000, "en", "EUR") == "1,250,000 EUR"

    def test_small_and_missing_amounts(self):
        assert format_amount(500, "fr") == "500 XAF"
        assert format_amount(None) == "0 XAF"


class TestFormatDate:
    def test_language_order(self):
        assert format_date(date(2026, 3, 5), "fr") == "05/03/2026"
        assert format_date(date(2026, 3, 5), "en") == "03/05/2026"

    def test_datetime_shown_in_platform_timezone(self):
        late_evening = datetime(2026, 3, 5, 23, 30, tzinfo=timezone.utc)
        assert format_date(late_evening, "fr", "Africa/Douala") == "06/03/2026"
        assert format_date(late_evening, "fr") == "05/03/2026"

    def test_strings_pass_through(self):
        assert format_date("12/10/2026", "en") == "12/10/2026"
        assert format_date(None) == ""


def test_ensure_utc():
    naive = datetime(2026, 1, 1, 8, 0)
    assert ensure_utc(naive).tzinfo == timezone.utc
    assert ensure_utc(None) is None


def test_serialize_dates():
    payload = serialize_dates({"day": date(2026, 1, 2), "nested": {"at": datetime(2026, 1, 2, 3, 4)}, "n": 1})
    assert payload == {"day": "2026-01-02", "nested": {"at": "2026-01-02T03:04:00"}, "n": 1}


class TestWhatsAppLinks:
    def test_normalize_e164(self):
        assert normalize_e164("+237 656 200 472") == "+237656200472"
        assert normalize_e164("00237656200472") == "+237656200472"
        assert normalize_e164("237-656-200-472") == "+237656200472"
        assert normalize_e164("12345") is None
        assert normalize_e164(None) is None

    def test_build_wa_url(self):
        url = build_wa_url("+237656200472", "Bonjour à tous")
        assert url == "https://wa.me/237656200472?text=Bonjour%20%C3%A0%20tous"
        assert build_wa_url("+237656200472") == "https://wa.me/237656200472"

    def test_build_wa_url_rejects_invalid_number(self):
        with pytest.raises(ValueError):
            build_wa_url("not-a-phone", "hi")
