"""Tests for structured logging helpers."""

import logging

import pytest

from marketplace_policy.core.access import check_access
from marketplace_policy.core.exceptions import PermissionDenied
from marketplace_policy.core.structured_logging import build_log_context
from marketplace_policy.db.enums import Action, ResourceType
from marketplace_policy.schemas.auth import Principal


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="user-1",
        business_id="biz-1",
        request_id="req-1",
        route="/leads",
        method="GET",
    )

    assert context == {
        "user_id": "user-1",
        "business_id": "biz-1",
        "request_id": "req-1",
        "route": "/leads",
        "method": "GET",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        business_id=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}


def test_denials_are_logged_without_resource_content(caplog):
    caplog.set_level(logging.INFO, logger="marketplace_policy.core.access")

    with pytest.raises(PermissionDenied):
        check_access(Principal.anonymous(), ResourceType.LEAD, Action.READ, resource={"summary": "secret"})

    assert "Access denied: read lead (PermissionDenied)" in caplog.text
    assert "secret" not in caplog.text
