"""Tests for AccessControlService: administrator checks and reporter grants."""

import pytest

from collateral_kernel.domain.dtos import AccessBasis
from collateral_kernel.exceptions import (
    CapacityExceededError,
    InvalidDataError,
    ReporterNotFoundError,
    UnauthorizedError,
)

ADMIN = "ledger-admin"
OWNER = "warehouse-owner"
REPORTER = "field-reporter"


class TestAdministrator:
    def test_identity_from_settings(self, ledger):
        assert ledger.access.administrator == ADMIN
        assert ledger.access.is_administrator(ADMIN)
        assert not ledger.access.is_administrator(OWNER)

    def test_require_administrator_logs_denial(self, ledger, captured_logs):
        with pytest.raises(UnauthorizedError) as exc_info:
            ledger.access.require_administrator(OWNER, "register_sensor")
        assert exc_info.value.code == "UNAUTHORIZED"
        denial = next(r for r in captured_logs() if r["message"] == "access_denied")
        assert denial["level"] == "WARNING"
        assert denial["action"] == "register_sensor"


class TestAuthorize:
    def test_bases(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, [3])
        assert ledger.access.authorize(ADMIN, 3, OWNER, "x") == AccessBasis.ADMINISTRATOR
        assert ledger.access.authorize(OWNER, 3, OWNER, "x") == AccessBasis.OWNER
        assert ledger.access.authorize(REPORTER, 3, OWNER, "x") == AccessBasis.REPORTER

    def test_reporter_not_accepted_for_owner_or_admin(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, [3])
        with pytest.raises(UnauthorizedError):
            ledger.access.authorize_owner_or_admin(REPORTER, 3, OWNER, "x")

    def test_unknown_caller(self, ledger):
        with pytest.raises(UnauthorizedError) as exc_info:
            ledger.access.authorize("nobody", 3, OWNER, "add_item")
        assert exc_info.value.inventory_id == 3


class TestGrants:
    def test_grant_and_replace(self, ledger):
        info = ledger.access.grant_reporter(ADMIN, REPORTER, [1, 2, 2])
        assert info.authorized
        assert info.inventory_permissions == frozenset({1, 2})
        assert info.last_report == 0

        info = ledger.access.grant_reporter(ADMIN, REPORTER, [9])
        assert info.inventory_permissions == frozenset({9})
        assert not info.permits(1)
        assert info.permits(9)

    def test_only_administrator_grants(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.access.grant_reporter(OWNER, REPORTER, [1])
        assert ledger.access.get_reporter_grant(REPORTER) is None

    def test_capacity(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, list(range(20)))
        with pytest.raises(CapacityExceededError) as exc_info:
            ledger.access.grant_reporter(ADMIN, REPORTER, list(range(21)))
        assert isinstance(exc_info.value, InvalidDataError)
        assert len(ledger.access.get_reporter_grant(REPORTER).inventory_permissions) == 20

    def test_negative_inventory_id(self, ledger):
        with pytest.raises(InvalidDataError):
            ledger.access.grant_reporter(ADMIN, REPORTER, [-1])

    def test_revoke_retains_record(self, ledger, clock):
        ledger.access.grant_reporter(ADMIN, REPORTER, [1, 2])
        clock.advance(12)
        info = ledger.access.revoke_reporter(ADMIN, REPORTER)
        assert not info.authorized
        assert info.inventory_permissions == frozenset()
        assert info.last_report == clock.current_epoch()
        assert ledger.access.get_reporter_grant(REPORTER) == info

    def test_revoked_reporter_denied(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, [1])
        ledger.access.revoke_reporter(ADMIN, REPORTER)
        with pytest.raises(UnauthorizedError):
            ledger.access.authorize(REPORTER, 1, OWNER, "add_item")

    def test_regrant_after_revoke(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, [1])
        ledger.access.revoke_reporter(ADMIN, REPORTER)
        info = ledger.access.grant_reporter(ADMIN, REPORTER, [4])
        assert info.authorized
        assert info.permits(4)

    def test_revoke_unknown(self, ledger):
        with pytest.raises(ReporterNotFoundError):
            ledger.access.revoke_reporter(ADMIN, "ghost")

    def test_revoke_requires_admin(self, ledger):
        ledger.access.grant_reporter(ADMIN, REPORTER, [1])
        with pytest.raises(UnauthorizedError):
            ledger.access.revoke_reporter(REPORTER, REPORTER)
        assert ledger.access.get_reporter_grant(REPORTER).authorized

    def test_record_report_ignores_other_bases(self, ledger, clock):
        ledger.access.grant_reporter(ADMIN, REPORTER, [1])
        clock.advance(5)
        ledger.access.record_report(REPORTER, AccessBasis.OWNER)
        assert ledger.access.get_reporter_grant(REPORTER).last_report == 0
        ledger.access.record_report(REPORTER, AccessBasis.REPORTER)
        assert ledger.access.get_reporter_grant(REPORTER).last_report == clock.current_epoch()
