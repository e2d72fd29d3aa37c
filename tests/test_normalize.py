from utils.normalize import build_lock_key, normalize_email, normalize_phone


class TestNormalizeEmail:
    def test_lowercases_and_trims(self):
        assert normalize_email("  Alice@Example.COM  ") == "alice@example.com"

    def test_empty_values_become_none(self):
        assert normalize_email(None) is None
        assert normalize_email("") is None
        assert normalize_email("   ") is None


class TestNormalizePhone:
    def test_strips_non_digits(self):
        assert normalize_phone("+1 (555) 123-4567") == "15551234567"

    def test_numeric_input_matches_string_input(self):
        assert normalize_phone(9876543210) == normalize_phone("9876543210") == "9876543210"

    def test_integral_float_is_treated_as_integer(self):
        assert normalize_phone(123456.0) == "123456"

    def test_fractional_number_keeps_all_digits(self):
        assert normalize_phone(12.5) == normalize_phone("12.5") == "125"

    def test_no_digits_becomes_none(self):
        assert normalize_phone(None) is None
        assert normalize_phone("") is None
        assert normalize_phone("abc") is None

    def test_no_length_validation(self):
        assert normalize_phone("1") == "1"
        assert normalize_phone("0" * 30) == "0" * 30


def test_lock_key_uses_placeholders_for_missing_values():
    assert build_lock_key("a@x.com", "123") == "a@x.com|123"
    assert build_lock_key("a@x.com", None) == "a@x.com|"
    assert build_lock_key(None, "123") == "|123"
