import os
import unittest
from unittest import mock

from drawpool.app import create_app
from drawpool.config import AppSettings, PoolSettings, StoreSettings, load_from_environment, validate_settings


class ValidateSettingsTests(unittest.TestCase):
    def _settings(self, **pool) -> AppSettings:
        return AppSettings(pool=PoolSettings(**pool), store=StoreSettings(database_url="sqlite:///:memory:"))

    def test_defaults_are_valid(self) -> None:
        settings = AppSettings()
        self.assertIs(validate_settings(settings), settings)

    def test_negative_claim_timeout_is_rejected(self) -> None:
        for timeout in (-0.5, -2, -5.0):
            with self.subTest(timeout=timeout):
                with self.assertRaisesRegex(RuntimeError, "CLAIM_TIMEOUT_SECONDS"):
                    validate_settings(self._settings(claim_timeout_seconds=timeout))

    def test_zero_and_wait_forever_timeouts_are_accepted(self) -> None:
        for timeout in (0, 0.0, -1, -1.0, 2.5):
            with self.subTest(timeout=timeout):
                validate_settings(self._settings(claim_timeout_seconds=timeout))

    def test_pool_bounds_are_checked(self) -> None:
        with self.assertRaisesRegex(RuntimeError, "POOL_MIN"):
            validate_settings(self._settings(min_number=0))
        with self.assertRaisesRegex(RuntimeError, "POOL_MAX"):
            validate_settings(self._settings(min_number=10, max_number=9))

    def test_unknown_backend_is_rejected(self) -> None:
        with self.assertRaisesRegex(RuntimeError, "STATE_BACKEND"):
            validate_settings(AppSettings(store=StoreSettings(backend="redis")))

    def test_create_app_refuses_negative_claim_timeout(self) -> None:
        with self.assertRaises(RuntimeError):
            create_app(self._settings(claim_timeout_seconds=-0.5))


class LoadFromEnvironmentTests(unittest.TestCase):
    def test_reads_pool_settings(self) -> None:
        env = {"POOL_MIN": "5", "POOL_MAX": "9", "CLAIM_TIMEOUT_SECONDS": "-1", "STATE_BACKEND": " File "}
        with mock.patch.dict(os.environ, env):
            settings = load_from_environment()

        self.assertEqual(settings.pool, PoolSettings(min_number=5, max_number=9, claim_timeout_seconds=-1.0))
        self.assertEqual(settings.store.backend, "file")

    def test_negative_timeout_from_environment_fails_startup(self) -> None:
        with mock.patch.dict(os.environ, {"CLAIM_TIMEOUT_SECONDS": "-3"}):
            with self.assertRaisesRegex(RuntimeError, "CLAIM_TIMEOUT_SECONDS"):
                load_from_environment()


if __name__ == "__main__":
    unittest.main()
