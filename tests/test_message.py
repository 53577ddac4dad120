import json

import pytest

from awscsm.errors import DecodeError, EmptyPayloadError, MalformedPayloadError
from awscsm.telemetry.message import CsmEvent, decode

USER_AGENT = (
    "APN/1.0 HashiCorp/1.0 Terraform/1.1.7 (+https://www.terraform.io) "
    "terraform-provider-aws/4.62.0 (+https://registry.terraform.io/providers/hashicorp/aws) "
    "aws-sdk-go/1.44.237 (go1.19.7; linux; arm64)"
)


def test_decode_terraform_api_call() -> None:
    payload = json.dumps(
        {
            "ClientId": "",
            "Api": "ListRoles",
            "Service": "IAM",
            "Timestamp": 1681236061717,
            "Type": "ApiCall",
            "AttemptCount": 1,
            "Latency": 817,
            "UserAgent": USER_AGENT,
            "Region": "eu-central-1",
            "XAmznRequestId": "c14c9ae3-ed1a-3382-75c1-765270f6922a",
            "FinalHttpStatusCode": 200,
            "MaxRetriesExceeded": 0,
        }
    )

    assert decode(payload) == CsmEvent(
        api="ListRoles",
        service="IAM",
        type="ApiCall",
        region="eu-central-1",
        attempts=1,
        latency=817,
        request_id="c14c9ae3-ed1a-3382-75c1-765270f6922a",
        final_http_status_code=200,
        timestamp=1681236061717,
        user_agent=USER_AGENT,
    )


def test_decode_missing_fields_take_zero_values() -> None:
    event = decode('{"Api": "GetObject"}')

    assert event.api == "GetObject"
    assert event.access_key == ""
    assert event.request_id == ""
    assert event.attempts == 0
    assert event.http_status_code == 0
    assert event.max_retries_exceeded == 0


def test_decode_accepts_bytes() -> None:
    event = decode(b'{"Type": "ApiCallAttempt", "HttpStatusCode": 503, "AccessKey": "AKIDEXAMPLE"}')

    assert event.type == "ApiCallAttempt"
    assert event.http_status_code == 503
    assert event.access_key == "AKIDEXAMPLE"


def test_decode_ignores_unknown_fields() -> None:
    with_extra = decode('{"Api": "ListRoles", "ClientId": "abc", "Fqdn": "iam.amazonaws.com"}')

    assert with_extra == decode('{"Api": "ListRoles"}')


def test_decode_matches_keys_case_insensitively() -> None:
    event = decode('{"api": "ListRoles", "attemptcount": 3}')

    assert event.api == "ListRoles"
    assert event.attempts == 3


def test_decode_last_matching_key_wins() -> None:
    assert decode('{"latency": 1, "Latency": 2}').latency == 2
    assert decode('{"Latency": 2, "latency": 1}').latency == 1


def test_decode_null_after_value_keeps_earlier_value() -> None:
    assert decode('{"Api": "ListRoles", "api": null}').api == "ListRoles"


def test_decode_null_keeps_zero_value() -> None:
    event = decode('{"Api": null, "Latency": null}')

    assert event == CsmEvent()


@pytest.mark.parametrize("payload", ["", "   ", "\n\t", b""])
def test_decode_rejects_empty_payload(payload) -> None:
    with pytest.raises(EmptyPayloadError):
        decode(payload)


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2, 3]",
        '"ApiCall"',
        '{"Latency": "817"}',
        '{"Latency": 8.5}',
        '{"MaxRetriesExceeded": true}',
        '{"Api": 42}',
        b"\xff\xfe{}",
    ],
)
def test_decode_rejects_malformed_payload(payload) -> None:
    with pytest.raises(MalformedPayloadError):
        decode(payload)


def test_decode_errors_share_a_base_class() -> None:
    assert issubclass(EmptyPayloadError, DecodeError)
    assert issubclass(MalformedPayloadError, DecodeError)


def test_decoded_event_is_immutable() -> None:
    event = decode('{"Api": "ListRoles"}')

    with pytest.raises(AttributeError):
        event.api = "DeleteRole"  # type: ignore[misc]


def test_as_payload_uses_wire_keys() -> None:
    event = CsmEvent(api="ListRoles", attempts=2, request_id="req-1")
    payload = event.as_payload()

    assert payload["Api"] == "ListRoles"
    assert payload["AttemptCount"] == 2
    assert payload["XAmznRequestId"] == "req-1"
    assert decode(json.dumps(payload)) == event
