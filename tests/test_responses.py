"""Tests for response normalisation helpers."""

from towncryer_sdk.exceptions import ApiError
from towncryer_sdk.responses import ApiResponse, handle_api_error, standardize_api_response


class TestStandardizeApiResponse:
    """Tests for standardize_api_response."""

    def test_empty_response_becomes_500(self):
        result = standardize_api_response(None)
        assert result == ApiResponse(code="500", message="Empty response received from API")

    def test_envelope_passes_through(self):
        result = standardize_api_response({"code": "201", "message": "Created", "data": {"id": 7}})
        assert result == ApiResponse(code="201", message="Created", data={"id": 7})

    def test_nested_envelope_is_unwrapped(self):
        result = standardize_api_response({"data": {"code": "202", "message": "Queued", "data": {"id": 1}}})
        assert result.code == "202"
        assert result.message == "Queued"
        assert result.data == {"id": 1}

    def test_plain_data_wrapper_becomes_success(self):
        result = standardize_api_response({"data": [1, 2, 3]})
        assert result == ApiResponse(code="200", message="Success", data=[1, 2, 3])

    def test_partial_envelope_fills_defaults(self):
        result = standardize_api_response({"message": "Done"})
        assert result.code == "200"
        assert result.message == "Done"

    def test_bare_payload_is_wrapped(self):
        result = standardize_api_response({"id": "evt_1"})
        assert result == ApiResponse(code="200", message="Success", data={"id": "evt_1"})

    def test_non_mapping_payload_is_wrapped(self):
        assert standardize_api_response("accepted").data == "accepted"

    def test_to_dict_omits_missing_data(self):
        assert ApiResponse(code="200", message="Success").to_dict() == {"code": "200", "message": "Success"}


class TestHandleApiError:
    """Tests for handle_api_error."""

    def test_api_error_returned_unchanged(self):
        error = ApiError("nope", status_code=404)
        assert handle_api_error(error) is error

    def test_foreign_error_wrapped_as_500(self):
        original = RuntimeError("boom")
        result = handle_api_error(original)

        assert isinstance(result, ApiError)
        assert result.status == 500
        assert result.message == "Error processing API request: boom"
        assert result.__cause__ is original
