"""
PURPOSE: HTTP tests for POST /webhook and GET /webhook/status.

Tests the webhook route end to end under both canonicalization policies:
- Verified notifications answer 200 with an empty body
- Rejections answer 403 and are counted for audit
- Signature location (header vs body field)
"""

from urllib.parse import urlencode

import pytest

from conftest import TEST_SECRET, sign

FORM = {"Content-Type": "application/x-www-form-urlencoded"}

PAYMENT_FIELDS = {
    "payment_id": "9b6f5c1e-0d2a-4c0e-a0f4-6f2b9b0d7f01",
    "payment_request_id": "9b6f5c1e-1111-4c0e-a0f4-6f2b9b0d7f01",
    "phone": "",
    "amount": "12.00",
    "currency": "SGD",
    "status": "completed",
    "reference_number": "POS-1760832000000",
}


def _canonical(fields: dict) -> bytes:
    return "".join(f"{k}{fields[k]}" for k in sorted(fields)).encode("utf-8")


def _signed_form(fields: dict, secret: str = TEST_SECRET) -> bytes:
    signed = dict(fields, hmac=sign(secret, _canonical(fields)))
    return urlencode(signed).encode("ascii")


class TestSortedFieldsWebhook:
    """Test POST /webhook with the sorted_fields policy."""

    def test_valid_form_notification_accepted(self, client):
        """A correctly signed form notification → 200, empty body."""
        response = client.post("/webhook", content=_signed_form(PAYMENT_FIELDS), headers=FORM)
        assert response.status_code == 200
        assert response.content == b""

    def test_field_order_does_not_matter(self, client):
        """The sender may put fields in any order."""
        body = f"hmac={sign(TEST_SECRET, b'a1b2')}&b=2&a=1".encode("ascii")
        response = client.post("/webhook", content=body, headers=FORM)
        assert response.status_code == 200

    def test_tampered_amount_rejected(self, client, app):
        """Changing a signed field → 403 and the payload is not recorded."""
        body = _signed_form(PAYMENT_FIELDS).replace(b"amount=12.00", b"amount=1.00")
        response = client.post("/webhook", content=body, headers=FORM)

        assert response.status_code == 403
        assert response.json() == {"status": "error", "detail": "Invalid signature"}

        status = app.state.webhook_processor.get_status()
        assert status["total_rejected"] == 1
        assert status["total_verified"] == 0
        assert app.state.webhook_processor.get_history() == []

    def test_missing_signature_rejected(self, client):
        """No hmac field and no header → 403."""
        response = client.post("/webhook", content=urlencode(PAYMENT_FIELDS).encode(), headers=FORM)
        assert response.status_code == 403

    def test_header_signature_accepted(self, client):
        """The signature may arrive in the X-Signature header instead."""
        body = urlencode(PAYMENT_FIELDS).encode()
        headers = dict(FORM, **{"X-Signature": sign(TEST_SECRET, _canonical(PAYMENT_FIELDS))})
        response = client.post("/webhook", content=body, headers=headers)
        assert response.status_code == 200

    def test_header_takes_precedence_over_field(self, client):
        """A wrong header signature is not rescued by a correct body field."""
        headers = dict(FORM, **{"X-Signature": "0" * 64})
        response = client.post("/webhook", content=_signed_form(PAYMENT_FIELDS), headers=headers)
        assert response.status_code == 403

    def test_repeated_keys_signed_comma_joined(self, client):
        """payment_methods[] sent twice is signed as "card,paynow_online"."""
        canonical = b"amount5payment_methods[]card,paynow_online"
        body = urlencode(
            [
                ("amount", "5"),
                ("payment_methods[]", "card"),
                ("payment_methods[]", "paynow_online"),
                ("hmac", sign(TEST_SECRET, canonical)),
            ]
        ).encode()
        response = client.post("/webhook", content=body, headers=FORM)
        assert response.status_code == 200

    def test_json_notification_accepted(self, client):
        """JSON object bodies are canonicalized from their fields."""
        payload = {"status": "completed", "amount": 12, "hmac": sign(TEST_SECRET, b"amount12statuscompleted")}
        response = client.post("/webhook", json=payload)
        assert response.status_code == 200

    def test_nested_json_rejected(self, client):
        """A nested object cannot be canonicalized → 403, not 500."""
        payload = {"customer": {"email": "a@b.c"}, "hmac": "0" * 64}
        response = client.post("/webhook", json=payload)
        assert response.status_code == 403

    def test_invalid_json_rejected(self, client):
        """An unparseable JSON body is a rejection."""
        response = client.post(
            "/webhook",
            content=b"{oops",
            headers={"Content-Type": "application/json", "X-Signature": "0" * 64},
        )
        assert response.status_code == 403

    def test_deeply_nested_json_rejected_and_recorded(self, client, app):
        """A body too deep to parse → 403 and counted, never a 500."""
        response = client.post(
            "/webhook",
            content=b"[" * 100000,
            headers={"Content-Type": "application/json", "X-Signature": "0" * 64},
        )
        assert response.status_code == 403
        assert response.json() == {"status": "error", "detail": "Invalid signature"}
        assert app.state.webhook_processor.get_status()["total_rejected"] == 1

    def test_non_string_signature_field_rejected(self, client):
        """A JSON hmac that is not a string is a rejection."""
        response = client.post("/webhook", json={"a": "1", "hmac": 12345})
        assert response.status_code == 403

    def test_wrong_secret_rejected(self, client):
        """A notification signed with another secret → 403."""
        body = _signed_form(PAYMENT_FIELDS, secret="someone-else")
        response = client.post("/webhook", content=body, headers=FORM)
        assert response.status_code == 403


class TestRawBodyWebhook:
    """Test POST /webhook with the raw_body policy."""

    def test_exact_bytes_accepted(self, raw_client):
        """HMAC of exactly the body bytes in the header → 200."""
        body = b'{"a":1}'
        response = raw_client.post(
            "/webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Signature": sign(TEST_SECRET, body)},
        )
        assert response.status_code == 200
        assert response.content == b""

    @pytest.mark.parametrize("mutated", [b'{"a":2}', b'{"a": 1}', b'{"a":1}\n', b'{"b":1}'])
    def test_mutated_body_rejected(self, raw_client, mutated):
        """Any change to the bytes with the same signature → 403."""
        signature = sign(TEST_SECRET, b'{"a":1}')
        response = raw_client.post(
            "/webhook",
            content=mutated,
            headers={"Content-Type": "application/json", "X-Signature": signature},
        )
        assert response.status_code == 403

    def test_body_field_signature_not_consulted(self, raw_client):
        """Under raw_body only the header carries the signature."""
        response = raw_client.post("/webhook", content=b"a=1&hmac=whatever", headers=FORM)
        assert response.status_code == 403

    def test_content_type_irrelevant(self, raw_client):
        """Form bodies are hashed as bytes, never parsed."""
        body = b"b=2&a=1"
        response = raw_client.post(
            "/webhook",
            content=body,
            headers=dict(FORM, **{"X-Signature": sign(TEST_SECRET, body)}),
        )
        assert response.status_code == 200


class TestWebhookStatus:
    """Test GET /webhook/status."""

    def test_counters_follow_outcomes(self, client):
        """Verified and rejected notifications are counted separately."""
        client.post("/webhook", content=_signed_form(PAYMENT_FIELDS), headers=FORM)
        client.post("/webhook", content=b"a=1&hmac=bad", headers=FORM)
        client.post("/webhook", content=b"a=1", headers=FORM)

        data = client.get("/webhook/status").json()
        assert data["policy"] == "sorted_fields"
        assert data["total_verified"] == 1
        assert data["total_rejected"] == 2
        assert data["history_count"] == 1
        assert data["last_verified_at"] is not None
        assert data["last_rejected_at"] is not None

    def test_history_summarises_verified_payment(self, client, app):
        """History keeps the reference fields, never the signature."""
        client.post("/webhook", content=_signed_form(PAYMENT_FIELDS), headers=FORM)

        entry = app.state.webhook_processor.get_history()[0]
        assert entry["status"] == "completed"
        assert entry["reference_number"] == "POS-1760832000000"
        assert "hmac" in entry["field_names"]
        assert entry.get("hmac") is None

    def test_raw_body_policy_reported(self, raw_client):
        """The status endpoint reports the policy in force."""
        assert raw_client.get("/webhook/status").json()["policy"] == "raw_body"
