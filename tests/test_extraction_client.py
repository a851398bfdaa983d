"""Tests for the extraction service client."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from pennytrail.core.exceptions import ServiceConfigurationError
from pennytrail.services.extraction_client import ExtractionClient, parse_extraction_response

URL = "http://extractor.test/extract"

ACME_RESPONSE = {
    "success": True,
    "results": [
        {
            "success": True,
            "final_amount": "$1,234.50",
            "transaction_date": "2024-03-01",
            "transaction_type": "purchase",
            "merchant": "Acme Inc.",
        }
    ],
}


def make_response(payload):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    return response


@pytest.fixture
def client():
    return ExtractionClient(service_url=URL, retry_attempts=2, retry_delay=0)


def test_single_candidate_is_normalized():
    result = parse_extraction_response(ACME_RESPONSE)

    assert result.ok
    assert len(result.candidates) == 1
    candidate = result.candidates[0]
    assert candidate.amount == 1234.50
    assert candidate.date == date(2024, 3, 1)
    assert candidate.type == "purchase"
    assert candidate.merchant == "Acme"
    assert candidate.raw_response == ACME_RESPONSE


def test_candidates_without_positive_amount_are_dropped():
    result = parse_extraction_response({
        "success": True,
        "results": [
            {"success": True, "final_amount": "0"},
            {"success": True},
            {"success": False, "final_amount": "12.00"},
            {"success": True, "final_amount": "9.99", "transaction_date": "someday", "transaction_type": "bogus"},
        ],
    })

    assert result.ok
    assert [c.amount for c in result.candidates] == [9.99]
    assert result.candidates[0].date is None
    assert result.candidates[0].type == "bogus"


def test_unsuccessful_container_is_empty_not_error():
    result = parse_extraction_response({"success": False, "results": [{"success": True, "final_amount": "5"}]})
    assert result.ok
    assert result.candidates == []


def test_unknown_shape_is_error():
    result = parse_extraction_response(["not", "a", "dict"])
    assert not result.ok
    assert result.error == "unknown response format"


def test_empty_content_skips_network(client):
    with patch("pennytrail.services.extraction_client.requests.post") as mock_post:
        result = client.extract("")

    mock_post.assert_not_called()
    assert result.candidates == []
    assert result.error == "empty content"


def test_missing_url_is_configuration_error():
    with pytest.raises(ServiceConfigurationError):
        ExtractionClient(service_url="").extract("Receipt")


def test_extract_posts_truncated_text(client):
    client.max_chars = 5
    with patch("pennytrail.services.extraction_client.requests.post") as mock_post:
        mock_post.return_value = make_response(ACME_RESPONSE)
        result = client.extract("Paid $1,234.50 to Acme")

    assert mock_post.call_args.args[0] == URL
    assert mock_post.call_args.kwargs["json"] == {"text": "Paid "}
    assert mock_post.call_args.kwargs["timeout"] == 45.0
    assert result.candidates[0].merchant == "Acme"


def test_extract_retries_then_degrades(client):
    with patch("pennytrail.services.extraction_client.requests.post") as mock_post:
        mock_post.side_effect = requests.Timeout("read timed out")
        result = client.extract("Receipt")

    assert mock_post.call_count == 2
    assert result.candidates == []
    assert result.error == "read timed out"


def test_invalid_json_counts_as_failed_attempt(client):
    bad = MagicMock()
    bad.json.side_effect = ValueError("Expecting value")
    with patch("pennytrail.services.extraction_client.requests.post") as mock_post:
        mock_post.side_effect = [bad, make_response(ACME_RESPONSE)]
        result = client.extract("Receipt")

    assert mock_post.call_count == 2
    assert len(result.candidates) == 1


@pytest.mark.asyncio
async def test_batch_extract(client):
    with patch("pennytrail.services.extraction_client.requests.post") as mock_post:
        mock_post.return_value = make_response(ACME_RESPONSE)
        results = await client.batch_extract(["a", "", "c", "d"])

    assert [len(r.candidates) for r in results] == [1, 0, 1, 1]
    assert results[1].error == "empty content"
