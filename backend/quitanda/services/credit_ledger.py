# Overview: Client credit ("fiado") ledger; bounded accumulator over Client.current_debt_cents.

from __future__ import annotations

from sqlalchemy import case, update

from ..errors import CreditLimitExceededError, NotFoundError, ValidationError
from ..models import Client
"""
Credit Ledger Invariants

- 0 <= current_debt_cents always.
- current_debt_cents + amount <= credit_limit_cents is enforced when debt is
  increased, by the UPDATE itself (no separate read-then-write).
- Reversals (cancellations) floor the debt at zero and never fail.
- Functions here never commit; the calling workflow owns the transaction.
"""


def get_client(session, client_id: int) -> Client:
    client = session.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


def ensure_credit_available(client: Client, amount_cents: int) -> None:
    """Read-time check used to fail a sale before any stock is touched."""
    attempted = client.current_debt_cents + amount_cents
    if attempted > client.credit_limit_cents:
        raise CreditLimitExceededError(client.id, client.credit_limit_cents, attempted)


def extend_credit(session, client_id: int, amount_cents: int) -> Client:
    """Increase a client's debt by ``amount_cents`` within the credit limit."""
    if amount_cents < 0:
        raise ValidationError("amount must be >= 0")
    client = get_client(session, client_id)

    result = session.execute(
        update(Client)
        .where(
            Client.id == client_id,
            Client.current_debt_cents + amount_cents <= Client.credit_limit_cents,
        )
        .values(
            current_debt_cents=Client.current_debt_cents + amount_cents,
            version_id=Client.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(client)
    if result.rowcount == 0:
        raise CreditLimitExceededError(
            client.id,
            client.credit_limit_cents,
            client.current_debt_cents + amount_cents,
        )
    return client


def settle_debt(session, client_id: int, amount_cents: int) -> Client:
    """Reduce debt by a payment; the payment may not exceed what is owed."""
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("amount must be > 0")
    client = get_client(session, client_id)

    result = session.execute(
        update(Client)
        .where(Client.id == client_id, Client.current_debt_cents >= amount_cents)
        .values(
            current_debt_cents=Client.current_debt_cents - amount_cents,
            version_id=Client.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(client)
    if result.rowcount == 0:
        raise ValidationError(
            "Payment exceeds current debt",
            details={
                "client_id": client.id,
                "current_debt_cents": client.current_debt_cents,
                "amount_cents": amount_cents,
            },
        )
    return client


def release_credit(session, client_id: int, amount_cents: int) -> Client:
    """Reverse a credit sale: debt = max(0, debt - amount)."""
    client = get_client(session, client_id)

    session.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(
            current_debt_cents=case(
                (Client.current_debt_cents > amount_cents, Client.current_debt_cents - amount_cents),
                else_=0,
            ),
            version_id=Client.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(client)
    return client
