import os
import unittest
from unittest import mock

from aloe_config.environment import (
    ProcessEnvironmentNameResolver,
    StaticEnvironmentNameResolver,
    is_development,
    normalize_environment_name,
)


class EnvironmentNameTests(unittest.TestCase):
    def test_normalize(self) -> None:
        self.assertEqual(normalize_environment_name("  Staging  "), "Staging")
        self.assertIsNone(normalize_environment_name("   "))
        self.assertIsNone(normalize_environment_name(""))
        self.assertIsNone(normalize_environment_name(None))

    def test_is_development(self) -> None:
        self.assertTrue(is_development("Development"))
        self.assertTrue(is_development("development"))
        self.assertTrue(is_development("DEVELOPMENT"))
        self.assertFalse(is_development("Production"))
        self.assertFalse(is_development("Dev"))
        self.assertFalse(is_development(None))

    def test_first_present_variable_wins(self) -> None:
        resolver = ProcessEnvironmentNameResolver(
            environ={"DOTNET_ENVIRONMENT": "Staging", "ASPNETCORE_ENVIRONMENT": "Production"}
        )
        self.assertEqual(resolver(), "Staging")

    def test_falls_back_to_web_host_variable(self) -> None:
        resolver = ProcessEnvironmentNameResolver(environ={"ASPNETCORE_ENVIRONMENT": " Staging "})
        self.assertEqual(resolver(), "Staging")

    def test_blank_first_variable_means_no_environment(self) -> None:
        resolver = ProcessEnvironmentNameResolver(
            environ={"DOTNET_ENVIRONMENT": "  ", "ASPNETCORE_ENVIRONMENT": "Production"}
        )
        self.assertIsNone(resolver())

    def test_nothing_set(self) -> None:
        self.assertIsNone(ProcessEnvironmentNameResolver(environ={})())

    def test_custom_variable_names(self) -> None:
        resolver = ProcessEnvironmentNameResolver(("APP_ENV",), environ={"APP_ENV": "Production"})
        self.assertEqual(resolver(), "Production")

    def test_reads_os_environ(self) -> None:
        with mock.patch.dict(os.environ, {"DOTNET_ENVIRONMENT": "Testing"}):
            self.assertEqual(ProcessEnvironmentNameResolver()(), "Testing")

    def test_static_resolver_normalizes(self) -> None:
        self.assertEqual(StaticEnvironmentNameResolver(" Development ")(), "Development")
        self.assertIsNone(StaticEnvironmentNameResolver("")())


if __name__ == "__main__":
    unittest.main()
