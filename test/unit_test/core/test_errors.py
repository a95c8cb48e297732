"""Unit tests for the error taxonomy and its serialized form."""

import pytest

from providermesh.core.errors import (
    DuplicateProviderError,
    ErrorInfo,
    InvalidConfigError,
    InvalidPromptError,
    InvocationCancelledError,
    InvocationTimeoutError,
    ProviderInvocationError,
    ProviderMeshError,
    ProviderUnavailableError,
    UnknownModelError,
    UnknownOperationError,
    UnknownProviderError,
    UnsupportedFeatureError,
    UnsupportedInvocationError,
    error_from_info,
)


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            UnknownProviderError("acme"),
            UnknownModelError("acme", "m1"),
            DuplicateProviderError("acme"),
            InvalidConfigError("candidate_count", 3, [1, 2, 4]),
            UnsupportedFeatureError("nope"),
            UnknownOperationError("op-1"),
            InvocationTimeoutError(1.0),
            InvocationCancelledError("stop"),
            ProviderUnavailableError("acme"),
            ProviderInvocationError("boom"),
            InvalidPromptError("empty"),
        ],
    )
    def test_all_errors_share_the_base(self, error):
        assert isinstance(error, ProviderMeshError)

    def test_builtin_compatibility(self):
        assert isinstance(InvocationTimeoutError(1.0), TimeoutError)
        assert isinstance(UnknownProviderError("acme"), LookupError)
        assert isinstance(InvalidConfigError("k", 1), ValueError)
        assert isinstance(UnsupportedInvocationError("x"), UnsupportedFeatureError)


class TestIdentity:
    def test_message_carries_identity(self):
        error = UnknownModelError("acme", "m9")
        assert error.provider_id == "acme"
        assert error.model_id == "m9"
        assert str(error) == "Model not found: 'm9' (provider=acme, model=m9)"

    def test_bind_fills_missing_identity_only(self):
        error = ProviderInvocationError("boom", provider_id="acme")
        bound = error.bind("other", "m1")
        assert bound is error
        assert error.provider_id == "acme"
        assert error.model_id == "m1"
        assert "model=m1" in str(error)

    def test_invalid_config_names_key_value_and_allowed(self):
        error = InvalidConfigError("candidate_count", 3, [1, 2, 4], provider_id="acme", model_id="m1")
        assert error.key == "candidate_count"
        assert error.value == 3
        assert error.allowed == [1, 2, 4]
        assert "candidate_count" in str(error)
        assert "{1, 2, 4}" in str(error)

    def test_invalid_config_range_message(self):
        error = InvalidConfigError("temperature", 3.5, {"minimum": 0.0, "maximum": 2.0})
        assert "[0, 2]" in str(error)

    def test_duplicate_alias_message_names_owner(self):
        error = DuplicateProviderError("g", existing="google")
        assert "google" in str(error)


class TestErrorInfo:
    def test_provider_error_round_trip_keeps_code_and_details(self):
        error = ProviderInvocationError("quota", provider_id="acme", model_id="m1", code="429", details={"retry": 3})
        rebuilt = error_from_info(error.to_error_info())
        assert isinstance(rebuilt, ProviderInvocationError)
        assert rebuilt.code == "429"
        assert rebuilt.details == {"retry": 3}
        assert (rebuilt.provider_id, rebuilt.model_id) == ("acme", "m1")

    def test_timeout_is_rebuilt_as_timeout(self):
        rebuilt = error_from_info(InvocationTimeoutError(0.25, provider_id="acme").to_error_info())
        assert isinstance(rebuilt, InvocationTimeoutError)
        assert rebuilt.timeout == 0.25

    def test_invalid_config_round_trip_keeps_allowed_set(self):
        info = InvalidConfigError("candidate_count", 3, [1, 2, 4], provider_id="acme", model_id="m1").to_error_info()
        assert info.details == {"key": "candidate_count", "value": 3, "allowed": [1, 2, 4]}

        rebuilt = error_from_info(ErrorInfo.model_validate_json(info.model_dump_json()))
        assert isinstance(rebuilt, InvalidConfigError)
        assert (rebuilt.key, rebuilt.value, rebuilt.allowed) == ("candidate_count", 3, [1, 2, 4])
        assert (rebuilt.provider_id, rebuilt.model_id) == ("acme", "m1")

    def test_invalid_config_round_trip_keeps_range(self):
        allowed = {"minimum": 0.0, "maximum": 2.0}
        rebuilt = error_from_info(InvalidConfigError("temperature", 3.5, allowed).to_error_info())
        assert rebuilt.allowed == allowed

    def test_simple_types_are_rebuilt_as_themselves(self):
        rebuilt = error_from_info(InvocationCancelledError("stop").to_error_info())
        assert type(rebuilt) is InvocationCancelledError
        assert rebuilt.message == "stop"

    def test_structured_types_become_provider_errors(self):
        info = UnknownOperationError("op-1", provider_id="acme").to_error_info()
        rebuilt = error_from_info(info)
        assert isinstance(rebuilt, ProviderInvocationError)
        assert rebuilt.details["error_type"] == "UnknownOperationError"

    def test_error_info_is_json_serializable(self):
        info = ErrorInfo(type="ProviderInvocationError", message="boom", code="500")
        assert ErrorInfo.model_validate_json(info.model_dump_json()) == info
