"""Unit tests for call-signature resolution."""
import pytest

from security_client.core.security import InvalidArgumentError, Profile, Role
from security_client.core.security.arguments import (
    CreateArguments,
    ensure_identifier,
    require_callback,
    resolve_create_arguments,
    resolve_flag_arguments,
)
from security_client.core.security.exceptions import MissingCallbackError

OP = "SecurityClient.create_role"


def callback(error, result=None):
    pass


@pytest.fixture()
def role():
    return Role(None, "r1", {"allow": True})


class TestResolveCreateArguments:
    def test_full_signature(self):
        args = resolve_create_arguments(OP, Role, {"a": 1}, "r1", {"replaceIfExist": True}, callback)
        assert args == CreateArguments({"a": 1}, "r1", {"replaceIfExist": True}, callback)

    def test_payload_only(self):
        assert resolve_create_arguments(OP, Role, {"a": 1}) == CreateArguments({"a": 1}, None, None, None)

    def test_callback_in_id_slot(self):
        args = resolve_create_arguments(OP, Role, {"a": 1}, callback)
        assert args == CreateArguments({"a": 1}, None, None, callback)

    def test_callback_in_options_slot(self):
        args = resolve_create_arguments(OP, Role, {"a": 1}, "r1", callback)
        assert args == CreateArguments({"a": 1}, "r1", None, callback)

    def test_entity_with_options_in_id_slot(self, role):
        args = resolve_create_arguments(OP, Role, role, {"replaceIfExist": True})
        assert args == CreateArguments(role, None, {"replaceIfExist": True}, None)

    def test_entity_with_options_and_callback_shifted(self, role):
        args = resolve_create_arguments(OP, Role, role, {"replaceIfExist": True}, callback)
        assert args == CreateArguments(role, None, {"replaceIfExist": True}, callback)

    def test_entity_with_options_shifted_and_extra_callback(self, role):
        with pytest.raises(InvalidArgumentError):
            resolve_create_arguments(OP, Role, role, {"replaceIfExist": True}, callback, callback)

    def test_callback_in_id_slot_with_trailing_values(self):
        with pytest.raises(InvalidArgumentError):
            resolve_create_arguments(OP, Role, {"a": 1}, callback, {"replaceIfExist": True})

    def test_plain_payload_with_mapping_id(self):
        """Only wrappers carry their own id: a plain payload needs a string."""
        with pytest.raises(InvalidArgumentError, match="string identifier"):
            resolve_create_arguments(OP, Role, {"a": 1}, {"replaceIfExist": True})

    def test_empty_string_id(self):
        with pytest.raises(InvalidArgumentError, match="empty"):
            resolve_create_arguments(OP, Role, {"a": 1}, "")

    def test_options_must_be_mapping(self):
        with pytest.raises(InvalidArgumentError, match="options"):
            resolve_create_arguments(OP, Role, {"a": 1}, "r1", ["replaceIfExist"])

    def test_wrong_wrapper_kind(self):
        with pytest.raises(InvalidArgumentError, match="expected a Role"):
            resolve_create_arguments(OP, Role, Profile(None, "p1"))

    def test_operation_named_in_message(self):
        with pytest.raises(InvalidArgumentError, match="SecurityClient.create_role"):
            resolve_create_arguments(OP, Role, None)


class TestResolveFlagArguments:
    def test_flag_and_callback(self):
        assert resolve_flag_arguments(OP, True, callback) == (True, callback)

    def test_callback_in_flag_slot(self):
        assert resolve_flag_arguments(OP, callback, None) == (False, callback)

    def test_none_flag(self):
        assert resolve_flag_arguments(OP, None, callback) == (False, callback)

    def test_two_callbacks(self):
        with pytest.raises(InvalidArgumentError):
            resolve_flag_arguments(OP, callback, callback)

    def test_non_boolean_flag(self):
        with pytest.raises(InvalidArgumentError):
            resolve_flag_arguments(OP, 1, callback)


class TestIdentifiersAndCallbacks:
    @pytest.mark.parametrize("value", [None, "", 5, {"_id": "r1"}])
    def test_invalid_identifiers(self, value):
        with pytest.raises(InvalidArgumentError):
            ensure_identifier(OP, value)

    def test_valid_identifier(self):
        assert ensure_identifier(OP, "r1") == "r1"

    def test_require_callback(self):
        with pytest.raises(MissingCallbackError, match="SecurityClient.get_role"):
            require_callback("SecurityClient.get_role", None)

    def test_require_callback_rejects_non_callable(self):
        with pytest.raises(InvalidArgumentError):
            require_callback(OP, "cb")
