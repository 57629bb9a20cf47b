# =============================================================================
# POLYMARKET APPROVALS - LOGGING / AUDIT UNIT TESTS
# =============================================================================

import json
import logging

from shared.enums import OrderSide
from shared.logging_config import AuditLogger, setup_logging
from approvals.models import ProposeRequest, ResumeRequest
from approvals.state_machine import OrderStaging
from tests.fakes import NOW_MS, TEST_SECRET


class TestAuditLogger:

    def test_writes_json_lines(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit")
        audit.log_event("PROPOSE", {"fingerprint": "0" * 32, "token_id": "tok-yes"})
        audit.log_event("RESUME", {"fingerprint": "0" * 32, "state": "REJECTED"})

        lines = audit.audit_file.read_text(encoding="utf-8").splitlines()
        records = [json.loads(line) for line in lines]
        assert [r["event"] for r in records] == ["PROPOSE", "RESUME"]
        assert records[1]["details"]["state"] == "REJECTED"

    def test_hash_is_deterministic(self):
        audit = AuditLogger()
        first = audit.log_event("CANCEL", {"scope": "order", "order_id": "0x1"})
        second = audit.log_event("CANCEL", {"order_id": "0x1", "scope": "order"})
        assert first["details_hash"] == second["details_hash"]
        assert len(first["details_hash"]) == 64

    def test_without_directory_propagates(self, tmp_path, caplog):
        AuditLogger(tmp_path)
        audit = AuditLogger()
        assert audit.audit_file is None
        with caplog.at_level(logging.INFO, logger=AuditLogger.LOGGER_NAME):
            audit.log_event("CANCEL", {"scope": "all"})
        assert '"event": "CANCEL"' in caplog.text

    def test_later_instances_keep_earlier_file(self, tmp_path):
        first = AuditLogger(tmp_path)
        AuditLogger()
        AuditLogger(tmp_path / "other")
        first.log_event("PROPOSE", {"fingerprint": "0" * 32})

        records = first.audit_file.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event"] for line in records] == ["PROPOSE"]

    def test_same_directory_shares_one_handler(self, tmp_path):
        first = AuditLogger(tmp_path)
        second = AuditLogger(tmp_path)
        assert first.logger is second.logger
        assert len(second.logger.handlers) == 1

        second.log_event("CANCEL", {"scope": "all"})
        assert len(first.audit_file.read_text(encoding="utf-8").splitlines()) == 1


class TestApprovalAuditTrail:

    def test_records_never_contain_token_or_key(self, config, credentials, gamma, clob_factory, context, tmp_path):
        audit = AuditLogger(tmp_path)
        staging = OrderStaging(config, credentials, gamma, clob_factory, audit=audit, clock=lambda: NOW_MS)
        proposal = staging.propose(
            ProposeRequest(side=OrderSide.BUY, price=0.62, size=10,
                           market_slug="will-it-rain-in-berlin", outcome="Yes"),
            context,
        )
        staging.resume(ResumeRequest(token=proposal.token, approve=True), context)

        text = audit.audit_file.read_text(encoding="utf-8")
        payload_part, signature_part = proposal.token.split(".")
        assert payload_part not in text
        assert signature_part not in text
        assert TEST_SECRET not in text
        events = [json.loads(line)["event"] for line in text.splitlines()]
        assert events == ["PROPOSE", "RESUME"]


class TestSetupLogging:

    def test_file_output(self, tmp_path):
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            log_file = setup_logging(console_output=False, log_dir=tmp_path)
            assert log_file.parent == tmp_path
            logging.getLogger("approvals.test").info("hello")
            for handler in root.handlers:
                handler.flush()
            assert "hello" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(root.handlers):
                handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_no_file(self):
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            assert setup_logging(console_output=False, file_output=False) is None
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
