"""
Tests for fault classification.
"""

import json

import pytest

from vault_kv2_sdk import (
    DEFAULT_RULES,
    AbsentResourceError,
    AccessDeniedError,
    CasRequiredError,
    ConcurrencyConflictError,
    FaultClassifier,
    FaultKind,
    FaultRule,
    PermissionPolicyError,
    ResponseEnvelope,
    UnclassifiedError,
)


def failed(status, *messages):
    return ResponseEnvelope(status, json.dumps({"errors": list(messages)}))


@pytest.fixture
def classifier():
    return FaultClassifier()


@pytest.mark.parametrize(
    "status,message,kind,restriction",
    [
        (404, None, FaultKind.ABSENT_RESOURCE, None),
        (403, "1 error occurred:\n\t* permission denied\n\n", FaultKind.ACCESS_DENIED, None),
        (400, "check-and-set parameter did not match the current version", FaultKind.CONCURRENCY_CONFLICT, None),
        (400, "check-and-set parameter required for this call", FaultKind.CAS_REQUIRED, None),
        (500, "exporting is disallowed on the policy", FaultKind.PERMISSION_POLICY, "export-disallowed"),
        (400, "plaintext backup is disallowed on the policy", FaultKind.PERMISSION_POLICY, "plaintext-backup-disallowed"),
        (400, "deletion is not allowed for this policy", FaultKind.PERMISSION_POLICY, "deletion-disallowed"),
        (400, "could not delete policy; not found", FaultKind.ABSENT_RESOURCE, None),
        (400, "invalid request", FaultKind.UNCLASSIFIED, None),
        (500, "internal error", FaultKind.UNCLASSIFIED, None),
        (429, "rate limit quota exceeded", FaultKind.UNCLASSIFIED, None),
    ],
)
def test_classification_table(classifier, status, message, kind, restriction):
    envelope = failed(status, message) if message else failed(status)
    fault = classifier.classify(envelope)
    assert fault.kind is kind
    assert fault.status_code == status
    assert fault.restriction == restriction


@pytest.mark.parametrize("status", [200, 204])
def test_success_is_not_a_fault(classifier, status):
    envelope = ResponseEnvelope(status, b"")
    assert classifier.classify(envelope) is None
    assert classifier.raise_for_status(envelope) is envelope


def test_status_rules_win_over_messages(classifier):
    envelope = failed(404, "check-and-set parameter did not match the current version")
    assert classifier.classify(envelope).kind is FaultKind.ABSENT_RESOURCE


def test_cas_phrases_only_apply_to_bad_requests(classifier):
    envelope = failed(500, "check-and-set parameter did not match the current version")
    assert classifier.classify(envelope).kind is FaultKind.UNCLASSIFIED


def test_matching_is_case_insensitive(classifier):
    assert classifier.classify(failed(500, "Exporting Is Disallowed")).kind is FaultKind.PERMISSION_POLICY


def test_raw_text_body(classifier):
    fault = classifier.classify(ResponseEnvelope(503, b"Vault is sealed"))
    assert fault.kind is FaultKind.UNCLASSIFIED
    assert fault.message == "Vault is sealed"


@pytest.mark.parametrize(
    "envelope,exc_class",
    [
        (failed(404), AbsentResourceError),
        (failed(403, "permission denied"), AccessDeniedError),
        (failed(400, "did not match the current version"), ConcurrencyConflictError),
        (failed(400, "check-and-set parameter required for this call"), CasRequiredError),
        (failed(500, "plaintext backup is disallowed"), PermissionPolicyError),
        (failed(502, "bad gateway"), UnclassifiedError),
    ],
)
def test_raise_for_status(classifier, envelope, exc_class):
    with pytest.raises(exc_class) as exc_info:
        classifier.raise_for_status(envelope)
    assert exc_info.value.status_code == envelope.status_code
    assert exc_info.value.kind is FaultKind(classifier.classify(envelope).kind)


def test_policy_error_carries_restriction(classifier):
    with pytest.raises(PermissionPolicyError) as exc_info:
        classifier.raise_for_status(failed(500, "exporting is disallowed"))
    assert exc_info.value.restriction == "export-disallowed"


def test_unclassified_error_keeps_status_and_message(classifier):
    with pytest.raises(UnclassifiedError) as exc_info:
        classifier.raise_for_status(failed(418, "teapot"))
    assert str(exc_info.value) == "HTTP 418: teapot"


def test_empty_message_gets_a_default(classifier):
    with pytest.raises(UnclassifiedError) as exc_info:
        classifier.raise_for_status(ResponseEnvelope(502, b""))
    assert "502" in exc_info.value.message


def test_rule_table_is_inspectable():
    assert isinstance(DEFAULT_RULES, tuple)
    assert DEFAULT_RULES[0] == FaultRule(FaultKind.ABSENT_RESOURCE, frozenset({404}))
    restrictions = {rule.restriction for rule in DEFAULT_RULES if rule.kind is FaultKind.PERMISSION_POLICY}
    assert restrictions == {"export-disallowed", "plaintext-backup-disallowed", "deletion-disallowed"}


def test_with_rules_evaluates_extra_rules_first(classifier):
    extended = classifier.with_rules(FaultRule(FaultKind.ACCESS_DENIED, frozenset({400}), r"bad token"))
    envelope = failed(400, "bad token")

    assert classifier.classify(envelope).kind is FaultKind.UNCLASSIFIED
    assert extended.classify(envelope).kind is FaultKind.ACCESS_DENIED
    assert extended.rules[1:] == classifier.rules


def test_rule_without_status_matches_any_failure():
    rule = FaultRule(FaultKind.UNCLASSIFIED, pattern="sealed")
    assert rule.matches(503, "Vault is sealed")
    assert not rule.matches(503, "standby")
