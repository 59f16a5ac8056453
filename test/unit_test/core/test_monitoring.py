"""Unit tests for the Logfire monitoring helpers."""

import importlib
import os
import sys
from unittest.mock import MagicMock, patch

import pytest

import oploop_ai.core.monitoring as monitoring


@pytest.fixture
def fresh_monitoring():
    """Reload the module under a patched environment, restoring it afterwards."""

    def _reload(env):
        with patch.dict(os.environ, env, clear=True):
            return importlib.reload(monitoring)

    yield _reload
    with patch.dict(os.environ, {}, clear=True):
        importlib.reload(monitoring)


class TestEnvironmentConfiguration:
    def test_disabled_by_default(self, fresh_monitoring):
        module = fresh_monitoring({})
        assert module.LOGFIRE_ENABLED is False
        assert module.LOGFIRE_PROJECT_NAME == "oploop-ai"

    @pytest.mark.parametrize("value", ["true", "1", "yes", "TRUE"])
    def test_enabled_values(self, fresh_monitoring, value):
        assert fresh_monitoring({"LOGFIRE_ENABLED": value}).LOGFIRE_ENABLED is True


class TestDisabledHelpers:
    def test_helpers_do_not_touch_logfire(self, fresh_monitoring):
        module = fresh_monitoring({})
        fake = MagicMock()
        with patch.dict(sys.modules, {"logfire": fake}):
            module.initialize_logfire()
            module.log_turn_started("c", "none", 0)
            module.log_turn_completed("c", "done", 1.0, 0)
            module.log_error("X", "boom")
        fake.configure.assert_not_called()
        fake.info.assert_not_called()
        fake.error.assert_not_called()


class TestEnabledHelpers:
    def test_initialize_without_token_skips_configuration(self, fresh_monitoring):
        module = fresh_monitoring({"LOGFIRE_ENABLED": "true"})
        fake = MagicMock()
        with patch.dict(sys.modules, {"logfire": fake}):
            module.initialize_logfire()
        fake.configure.assert_not_called()

    def test_initialize_configures_and_instruments(self, fresh_monitoring):
        module = fresh_monitoring({"LOGFIRE_ENABLED": "true", "LOGFIRE_TOKEN": "tok"})
        fake = MagicMock()
        app = MagicMock()
        with patch.dict(sys.modules, {"logfire": fake}):
            module.initialize_logfire(app)
        fake.configure.assert_called_once()
        assert fake.configure.call_args.kwargs["token"] == "tok"
        fake.instrument_pydantic_ai.assert_called_once()
        fake.instrument_sqlalchemy.assert_called_once()
        fake.instrument_fastapi.assert_called_once_with(app=app)

    def test_instrumentation_failure_is_tolerated(self, fresh_monitoring):
        module = fresh_monitoring({"LOGFIRE_ENABLED": "true", "LOGFIRE_TOKEN": "tok"})
        fake = MagicMock()
        fake.instrument_sqlalchemy.side_effect = RuntimeError("no engine")
        with patch.dict(sys.modules, {"logfire": fake}):
            module.initialize_logfire()
        fake.instrument_pydantic_ai.assert_called_once()

    def test_turn_and_error_logging(self, fresh_monitoring):
        module = fresh_monitoring({"LOGFIRE_ENABLED": "true", "LOGFIRE_TOKEN": "tok"})
        fake = MagicMock()
        with patch.dict(sys.modules, {"logfire": fake}):
            module.log_turn_started("c", "read", 1)
            module.log_turn_completed("c", "done", 12.5, 2)
            module.log_error("TurnTimeout", "too slow", {"chat_id": "c"})

        assert fake.info.call_args_list[0].kwargs == {"chat_id": "c", "mode": "read", "iteration": 1}
        assert fake.info.call_args_list[1].kwargs["operations"] == 2
        fake.error.assert_called_once()
        assert fake.error.call_args.kwargs["chat_id"] == "c"
