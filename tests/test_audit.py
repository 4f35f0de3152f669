"""Tests for the audit ledger and the audited-mutation wrapper."""

import uuid

import pytest

from marketplace_policy.core.exceptions import AuditWriteFailure
from marketplace_policy.db.enums import AUDIT_VOCABULARY_VERSION, AuditAction, Role
from marketplace_policy.db.models import AuditEvent, AuditLedgerImmutableError, Business
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import audit_service
from marketplace_policy.services.audit_service import MutationOutcome, audited


# =============================================================================
# Unit Tests (no DB required)
# =============================================================================

def test_canonical_json_sorted():
    """canonical_json should sort keys and use compact separators."""
    result = audit_service.canonical_json({"b": 2, "a": 1})
    assert result == '{"a":1,"b":2}'


def test_canonical_json_stringifies_uuids():
    value = uuid.uuid4()
    assert audit_service.canonical_json({"id": value}) == f'{{"id":"{value}"}}'


def test_vocabulary_is_closed_and_versioned():
    assert AUDIT_VOCABULARY_VERSION == 1
    assert {a.value for a in AuditAction} == {
        "trust.consent_recorded",
        "trust.listing_promotion_state_changed",
        "trust.listing_verification_level_changed",
        "trust.review_dispute_created",
        "trust.review_reply_created",
    }


def test_audited_requires_an_action():
    with pytest.raises(ValueError):
        audited(entity_type="listing")


# =============================================================================
# Ledger writes
# =============================================================================

def test_record_auditable_mutation_appends_row(db, admin):
    entity_id = uuid.uuid4()

    event = audit_service.record_auditable_mutation(
        db,
        AuditAction.CONSENT_RECORDED,
        "trust_consent",
        entity_id,
        admin.id,
        {"listing_id": entity_id, "granted": True},
    )
    db.commit()

    stored = db.get(AuditEvent, event.id)
    assert stored.action == "trust.consent_recorded"
    assert stored.actor_user_id == admin.id
    assert stored.event_metadata == {"listing_id": str(entity_id), "granted": True}


def test_unknown_action_rejected(db):
    with pytest.raises(ValueError):
        audit_service.record_auditable_mutation(db, "trust.something_else", "listing", uuid.uuid4(), None)


def test_string_action_accepted_when_known(db):
    event = audit_service.record_auditable_mutation(
        db, "trust.review_reply_created", "review_reply", uuid.uuid4(), None
    )
    assert event.action == AuditAction.REVIEW_REPLY_CREATED.value


def test_unserializable_metadata_is_audit_failure(db):
    # Mixed key types cannot be sorted into canonical JSON
    with pytest.raises(AuditWriteFailure):
        audit_service.record_auditable_mutation(
            db,
            AuditAction.CONSENT_RECORDED,
            "trust_consent",
            uuid.uuid4(),
            None,
            {1: "a", "b": 2},
        )


def test_audit_rows_cannot_be_updated(db):
    event = audit_service.record_auditable_mutation(
        db, AuditAction.CONSENT_RECORDED, "trust_consent", uuid.uuid4(), None
    )
    db.commit()

    event.entity_type = "listing"
    with pytest.raises(AuditLedgerImmutableError):
        db.flush()
    db.rollback()


def test_audit_rows_cannot_be_deleted(db):
    event = audit_service.record_auditable_mutation(
        db, AuditAction.CONSENT_RECORDED, "trust_consent", uuid.uuid4(), None
    )
    db.commit()

    db.delete(event)
    with pytest.raises(AuditLedgerImmutableError):
        db.flush()
    db.rollback()
    assert db.query(AuditEvent).count() == 1


# =============================================================================
# audited() wrapper
# =============================================================================

def _actor() -> Principal:
    return Principal(role=Role.ADMIN, user_id=None)


def test_wrapper_commits_mutation_and_event_together(db):
    @audited(AuditAction.CONSENT_RECORDED, entity_type="business")
    def rename(db, principal, name):
        business = Business(name=name, slug=f"slug-{uuid.uuid4().hex[:8]}")
        db.add(business)
        db.flush()
        return MutationOutcome(business, metadata={"name_length": len(name)})

    business = rename(db, _actor(), "Renamed")

    db.expire_all()
    assert db.get(Business, business.id) is not None
    events = audit_service.list_events_for_entity(db, "business", business.id)
    assert len(events) == 1
    assert events[0].event_metadata == {"name_length": 7}


def test_wrapper_skips_event_for_noop(db):
    @audited(AuditAction.CONSENT_RECORDED, entity_type="business")
    def touch(db, principal, business):
        return MutationOutcome(business, changed=False)

    business = Business(name="Same", slug="same")
    db.add(business)
    db.commit()

    touch(db, _actor(), business)

    assert db.query(AuditEvent).count() == 0


def test_wrapper_rolls_back_on_error(db):
    @audited(AuditAction.CONSENT_RECORDED, entity_type="business")
    def explode(db, principal):
        db.add(Business(name="Ghost", slug="ghost"))
        db.flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        explode(db, _actor())

    assert db.query(Business).filter(Business.slug == "ghost").count() == 0


def test_wrapper_rejects_undeclared_action(db):
    @audited(AuditAction.CONSENT_RECORDED, entity_type="business")
    def sneaky(db, principal):
        business = Business(name="Sneaky", slug="sneaky")
        db.add(business)
        db.flush()
        return MutationOutcome(business, action=AuditAction.REVIEW_REPLY_CREATED)

    with pytest.raises(ValueError):
        sneaky(db, _actor())

    assert db.query(Business).filter(Business.slug == "sneaky").count() == 0
    assert db.query(AuditEvent).count() == 0
