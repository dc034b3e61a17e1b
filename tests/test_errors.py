"""Tests pour l'enveloppe standard des erreurs du domaine."""

from __future__ import annotations

from channelstore.domain.errors import (
    AuthorizationError,
    DependencyError,
    ErrorCodes,
    NotFoundError,
    QueryError,
    ValidationError,
)


def test_not_found_envelope_carries_entity() -> None:
    err = NotFoundError("deployable_version", "gone", trace_id="t-1")
    assert err.envelope().to_dict() == {
        "code": ErrorCodes.NOT_FOUND,
        "message": "gone",
        "trace_id": "t-1",
        "details": {"entity": "deployable_version"},
    }


def test_dependency_error_is_a_validation_error() -> None:
    err = DependencyError(3, "3 subscriptions depend on this channel")
    assert isinstance(err, ValidationError)
    assert err.envelope().details == {"count": 3}
    assert err.code == ErrorCodes.DEPENDENCY_ERROR


def test_envelope_omits_empty_details() -> None:
    assert "details" not in QueryError("Query x error. MessageID: r.").envelope().to_dict()
    assert AuthorizationError("no").envelope().code == ErrorCodes.FORBIDDEN
