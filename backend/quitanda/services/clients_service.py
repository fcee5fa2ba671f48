# Overview: Service-layer operations for clients and their fiado accounts.

from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..models import Client
from .audit_service import append_audit_event
from .concurrency import run_with_retry
from .credit_ledger import get_client, settle_debt


def _check_document_unique(session, document_number: str | None, exclude_id: int | None = None) -> None:
    if not document_number:
        return
    q = session.query(Client.id).filter(Client.document_number == document_number)
    if exclude_id is not None:
        q = q.filter(Client.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Client with document {document_number} already exists")


def create_client(session, patch: dict) -> Client:
    if "current_debt_cents" in patch:
        raise ValidationError("current_debt_cents is managed by sales and payments")

    def _op():
        _check_document_unique(session, patch.get("document_number"))
        client = Client(**patch)
        session.add(client)
        session.flush()
        append_audit_event(
            session,
            event_type="client.created",
            entity_type="client",
            entity_id=client.id,
            payload={"credit_limit_cents": client.credit_limit_cents},
        )
        session.commit()
        return client

    return run_with_retry(session, _op)


def update_client(session, client_id: int, patch: dict) -> Client:
    if "current_debt_cents" in patch:
        raise ValidationError("current_debt_cents is managed by sales and payments")

    def _op():
        client = get_client(session, client_id)
        _check_document_unique(session, patch.get("document_number"), exclude_id=client.id)
        new_limit = patch.get("credit_limit_cents")
        if new_limit is not None and new_limit < client.current_debt_cents:
            raise ValidationError(
                "Credit limit cannot be set below the current debt",
                details={
                    "client_id": client.id,
                    "current_debt_cents": client.current_debt_cents,
                    "credit_limit_cents": new_limit,
                },
            )
        # The version counter turns a concurrent debt change into a retry
        for key, value in patch.items():
            setattr(client, key, value)
        session.commit()
        return client

    return run_with_retry(session, _op)


def pay_debt(session, client_id: int, amount_cents: int, *, user_id: int | None = None) -> Client:
    """Record a payment against a client's fiado balance."""
    def _op():
        client = settle_debt(session, client_id, amount_cents)
        append_audit_event(
            session,
            event_type="client.debt_paid",
            entity_type="client",
            entity_id=client.id,
            actor_user_id=user_id,
            payload={"amount_cents": amount_cents, "current_debt_cents": client.current_debt_cents},
        )
        session.commit()
        return client

    return run_with_retry(session, _op)


def list_clients(session, *, active_only: bool = False, limit: int = 50) -> list[Client]:
    q = session.query(Client)
    if active_only:
        q = q.filter(Client.is_active.is_(True))
    return q.order_by(Client.name.asc(), Client.id.asc()).limit(limit).all()


def list_debtors(session) -> list[Client]:
    """Clients with an outstanding balance, largest first."""
    return (
        session.query(Client)
        .filter(Client.current_debt_cents > 0)
        .order_by(Client.current_debt_cents.desc(), Client.id.asc())
        .all()
    )
