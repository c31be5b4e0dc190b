import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_account_number_masked(self):
        event_dict = {"event": "test", "details": "account_no: 09123456789"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "09123456789" not in result["details"]
        assert "***MASKED***" in result["details"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_authorization_header_masked_case_insensitively(self):
        event_dict = {"event": "test", "header": "Authorization: Bearer.eyJhbGciOi"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGciOi" not in result["header"]

    def test_several_secrets_in_one_value(self):
        event_dict = {"event": "password=a1, secret=b2"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "a1" not in result["event"]
        assert "b2" not in result["event"]

    def test_non_string_values_untouched(self):
        event_dict = {"event": "test", "retry_count": 3, "ids": ["token=x"]}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["retry_count"] == 3
        assert result["ids"] == ["token=x"]

    def test_non_sensitive_data_unchanged(self):
        event_dict = {"event": "order.created", "order_number": "ORD-20260101-ABC123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-20260101-ABC123"
        assert result["event"] == "order.created"
