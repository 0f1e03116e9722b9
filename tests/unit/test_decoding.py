"""
Unit tests for typed response decoding.
"""

from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel

from courier.core.decoding import decode_payload
from courier.exceptions import DecodeError


class Rate(BaseModel):
    currency: str
    value: float
    note: Optional[str] = None


class TestDecodePayload:
    def test_model(self):
        assert decode_payload(b'{"currency": "USD", "value": 1.5}', Rate) == Rate(currency="USD", value=1.5)

    def test_list_of_models(self):
        raw = b'[{"currency": "USD", "value": 1}, {"currency": "EUR", "value": 0.9}]'
        rates = decode_payload(raw, List[Rate])
        assert [rate.currency for rate in rates] == ["USD", "EUR"]

    def test_plain_types(self):
        assert decode_payload(b'{"a": 1}', Dict[str, int]) == {"a": 1}
        assert decode_payload(b"[]", list) == []

    def test_bytes_passthrough(self):
        assert decode_payload(b"not json", bytes) == b"not json"

    def test_missing_field(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_payload(b'{"currency": "USD"}', Rate)

        assert exc_info.value.code == "missing"
        assert "value" in exc_info.value.description

    def test_wrong_type_reports_location_and_count(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_payload(b'[{"currency": 1, "value": "x"}]', List[Rate])

        description = exc_info.value.description
        assert "at '0.currency'" in description
        assert "(+1 more)" in description

    def test_invalid_json(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_payload(b"{oops", Rate)

        assert exc_info.value.code == "json_invalid"

    def test_chains_validation_error(self):
        from pydantic import ValidationError

        with pytest.raises(DecodeError) as exc_info:
            decode_payload(b"{}", Rate)

        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_shape_without_schema(self):
        from pydantic import PydanticUserError

        class Opaque:
            pass

        with pytest.raises(DecodeError) as exc_info:
            decode_payload(b"{}", Opaque)

        assert exc_info.value.code == "schema-for-unknown-type"
        assert "Opaque" in exc_info.value.description
        assert isinstance(exc_info.value.__cause__, PydanticUserError)
