# Overview: Pytest coverage for request validation and normalization.

import pytest

from quitanda.errors import ValidationError
from quitanda.models import Client, Product
from quitanda.routes.clients import CLIENT_POLICY
from quitanda.routes.products import PRODUCT_POLICY, PRODUCT_UPDATE_POLICY
from quitanda.validation import (
    MAX_PRICE_CENTS,
    coerce_int,
    enforce_rules_client,
    enforce_rules_product,
    parse_movement_type,
    parse_sale_request,
    validate_payload,
)


class TestCoerceInt:

    @pytest.mark.parametrize("value,expected", [(5, 5), ("12", 12), (" 7 ", 7), ("-3", -3)])
    def test_accepts_integers(self, value, expected):
        assert coerce_int("n", value) == expected

    @pytest.mark.parametrize("value", [True, 1.5, 2.0, "1.0", "1e3", "", "abc", None, [1]])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError):
            coerce_int("n", value)


class TestValidatePayload:

    def test_product_create_requires_name_and_price(self):
        with pytest.raises(ValidationError, match="Missing required fields: price_cents"):
            validate_payload(model=Product, payload={"name": "Cafe"}, policy=PRODUCT_POLICY, partial=False)

    def test_strips_strings_and_coerces_ints(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Cafe 500g ", "price_cents": "1790"},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        assert patch == {"name": "Cafe 500g", "price_cents": 1790}

    def test_rejects_fields_outside_policy(self):
        with pytest.raises(ValidationError, match="Field not allowed: version_id"):
            validate_payload(model=Product, payload={"version_id": 3}, policy=PRODUCT_POLICY, partial=True)

    def test_quantity_not_writable_on_update(self):
        with pytest.raises(ValidationError, match="quantity"):
            validate_payload(model=Product, payload={"quantity": 3}, policy=PRODUCT_UPDATE_POLICY, partial=True)

    def test_blank_required_string(self):
        with pytest.raises(ValidationError, match="cannot be blank"):
            validate_payload(model=Product, payload={"name": "   "}, policy=PRODUCT_POLICY, partial=True)

    def test_null_on_non_nullable(self):
        with pytest.raises(ValidationError, match="cannot be null"):
            validate_payload(model=Product, payload={"price_cents": None}, policy=PRODUCT_POLICY, partial=True)

    def test_non_dict_payload(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Client, payload=["x"], policy=CLIENT_POLICY, partial=True)


class TestBusinessRules:

    @pytest.mark.parametrize("patch", [
        {"price_cents": -1},
        {"price_cents": MAX_PRICE_CENTS + 1},
        {"cost_price_cents": -5},
        {"min_quantity": -1},
        {"quantity": -1},
    ])
    def test_product_rules(self, patch):
        with pytest.raises(ValidationError):
            enforce_rules_product(patch)

    def test_document_number_is_normalized(self):
        patch = {"name": "Ana", "document_number": "123.456.789-01"}
        enforce_rules_client(patch)
        assert patch["document_number"] == "12345678901"

    @pytest.mark.parametrize("patch", [
        {"name": "A"},
        {"document_number": "123"},
        {"email": "not-an-email"},
        {"credit_limit_cents": -100},
    ])
    def test_client_rules(self, patch):
        with pytest.raises(ValidationError):
            enforce_rules_client(patch)


class TestParseSaleRequest:

    def _payload(self, **overrides):
        payload = {
            "user_id": 1,
            "payment_method": "PIX",
            "items": [{"product_id": 3, "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    def test_parses_minimal_sale(self):
        request = parse_sale_request(self._payload(notes="  troco p/ 50 "))
        assert request.payment_method == "PIX"
        assert request.client_id is None
        assert request.discount_cents == 0
        assert request.notes == "troco p/ 50"
        assert request.items[0].product_id == 3
        assert request.items[0].quantity == 2
        assert request.items[0].discount_cents == 0

    @pytest.mark.parametrize("overrides,message", [
        ({"user_id": None}, "user_id"),
        ({"payment_method": "CHEQUE"}, "payment_method"),
        ({"items": []}, "at least one item"),
        ({"discount_cents": -1}, "discount_cents"),
        ({"items": [{"product_id": 3, "quantity": 0}]}, "quantity"),
        ({"items": [{"product_id": 3}]}, "requires product_id and quantity"),
        ({"items": [{"product_id": 3, "quantity": 1.5}]}, "quantity"),
        ({"items": ["x"]}, "must be an object"),
    ])
    def test_rejects_malformed(self, overrides, message):
        with pytest.raises(ValidationError, match=message):
            parse_sale_request(self._payload(**overrides))

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError):
            parse_sale_request(None)

    def test_movement_type(self):
        assert parse_movement_type("LOSS") == "LOSS"
        with pytest.raises(ValidationError):
            parse_movement_type("SALE")
