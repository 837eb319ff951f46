import json
import unittest
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from aloe_config import ConfigurationBuilder, InMemoryFileAccess
from aloe_config.configuration import unflatten
from aloe_config.models import SampleSettings


class _Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    port: int
    tags: List[str] = []
    secure: Optional[bool] = None


class _Cluster(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoints: List[_Endpoint] = []


class ConfigurationLookupTests(unittest.TestCase):
    def setUp(self) -> None:
        self.configuration = (
            ConfigurationBuilder()
            .add_in_memory_collection({"Application": {"Name": "first", "Version": "1"}, "Servers": ["a", "b"]})
            .add_in_memory_collection({"application:name": "second"})
            .build(watch=False)
        )

    def test_later_provider_wins(self) -> None:
        self.assertEqual(self.configuration["Application:Name"], "second")
        self.assertEqual(self.configuration["Application:Version"], "1")

    def test_lookup_is_case_insensitive(self) -> None:
        self.assertEqual(self.configuration["APPLICATION:VERSION"], "1")
        self.assertIn("application:version", self.configuration)

    def test_missing_key(self) -> None:
        self.assertIsNone(self.configuration["Nope"])
        self.assertIsNone(self.configuration.get_section("Application")["Missing"])
        self.assertNotIn("Nope", self.configuration)
        self.assertIsNone(ConfigurationBuilder().build(watch=False)["Missing"])
        self.assertIsNone(self.configuration.get("Nope"))
        self.assertEqual(self.configuration.get("Nope", "fallback"), "fallback")

    def test_set_overrides_all_providers(self) -> None:
        self.configuration["Application:Name"] = "patched"
        self.assertEqual(self.configuration["Application:Name"], "patched")

    def test_sections(self) -> None:
        section = self.configuration.get_section("Application")
        self.assertEqual(section.key, "Application")
        self.assertEqual(section.path, "Application")
        self.assertIsNone(section.value)
        self.assertTrue(section.exists())
        self.assertEqual(section["Name"], "second")
        self.assertEqual([c.key for c in section.get_children()], ["Name", "Version"])
        self.assertFalse(self.configuration.get_section("Missing").exists())

    def test_children_sort_numbers_first(self) -> None:
        servers = self.configuration.get_section("Servers").get_children()
        self.assertEqual([c.value for c in servers], ["a", "b"])
        top_level = [c.key for c in self.configuration.get_children()]
        self.assertEqual(top_level, ["Application", "Servers"])

    def test_as_dict(self) -> None:
        self.assertEqual(
            self.configuration.as_dict(),
            {"Application": {"Name": "second", "Version": "1"}, "Servers": ["a", "b"]},
        )
        self.assertEqual(self.configuration.get_section("Application").as_dict(nested=False), {"Name": "second", "Version": "1"})

    def test_iteration_is_sorted_flat_view(self) -> None:
        keys = [key for key, _ in self.configuration]
        self.assertEqual(keys, ["Application:Name", "Application:Version", "Servers:0", "Servers:1"])

    def test_debug_view_names_provider(self) -> None:
        view = self.configuration.debug_view()
        self.assertIn("Application:Name=second (MemoryProvider)", view)


class UnflattenTests(unittest.TestCase):
    def test_merges_segments_case_insensitively(self) -> None:
        self.assertEqual(unflatten({"App:Name": "x", "APP:Port": "1"}), {"App": {"Name": "x", "Port": "1"}})

    def test_children_replace_value(self) -> None:
        self.assertEqual(unflatten({"A": "", "A:B": "1"}), {"A": {"B": "1"}})

    def test_sparse_indexes_stay_dict(self) -> None:
        self.assertEqual(unflatten({"L:0": "a", "L:2": "c"}), {"L": {"0": "a", "2": "c"}})


class ConfigurationBindTests(unittest.TestCase):
    def test_bind_section_to_model(self) -> None:
        configuration = (
            ConfigurationBuilder()
            .add_in_memory_collection({"Endpoint": {"host": "localhost", "port": 8080, "tags": ["x", "y"]}})
            .add_command_line(["--Endpoint:port=9090", "--Endpoint:secure=true"])
            .build(watch=False)
        )
        endpoint = configuration.bind(_Endpoint, section="Endpoint")
        self.assertEqual(endpoint, _Endpoint(host="localhost", port=9090, tags=["x", "y"], secure=True))

    def test_bind_sample_settings_ignores_unrelated_keys(self) -> None:
        configuration = (
            ConfigurationBuilder()
            .add_in_memory_collection(
                {
                    "Application": {"Name": "demo", "Version": "2.0"},
                    "ConnectionStrings": {"DefaultConnection": "Server=db"},
                    "Logging": {"Level": "DEBUG", "LogLevel": {"Default": "Information"}},
                    "PATH": "/usr/bin",
                }
            )
            .build(watch=False)
        )
        settings = configuration.bind(SampleSettings)
        self.assertEqual(settings.application.name, "demo")
        self.assertEqual(settings.connection_strings["DefaultConnection"], "Server=db")
        self.assertEqual(settings.logging.level, "DEBUG")
        self.assertEqual(configuration.get_connection_string("DefaultConnection"), "Server=db")

    def test_bind_matches_keys_case_insensitively(self) -> None:
        configuration = (
            ConfigurationBuilder()
            .add_in_memory_collection({"APPLICATION": {"NAME": "x"}})
            .add_environment_variables(
                environ={
                    "APPLICATION__VERSION": "3.1",
                    "CONNECTIONSTRINGS__DefaultConnection": "Server=env",
                    "logging__level": "WARNING",
                }
            )
            .build(watch=False)
        )
        self.assertEqual(configuration.get("Application:Name"), "x")
        settings = configuration.bind(SampleSettings)
        self.assertEqual(settings.application.name, "x")
        self.assertEqual(settings.application.version, "3.1")
        self.assertEqual(settings.connection_strings, {"DefaultConnection": "Server=env"})
        self.assertEqual(settings.logging.level, "WARNING")

    def test_bind_respells_keys_inside_lists(self) -> None:
        configuration = (
            ConfigurationBuilder()
            .add_in_memory_collection({"ENDPOINTS": [{"HOST": "a", "PORT": 1}, {"Host": "b", "Port": 2}]})
            .build(watch=False)
        )
        settings = configuration.bind(_Cluster)
        self.assertEqual([e.host for e in settings.endpoints], ["a", "b"])
        self.assertEqual([e.port for e in settings.endpoints], [1, 2])


class ConfigurationReloadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.files = InMemoryFileAccess({"settings.json": json.dumps({"Mode": "a"})})
        self.configuration = (
            ConfigurationBuilder()
            .add_json_file("settings.json", reload_on_change=True, file_access=self.files)
            .build(watch=False)
        )
        self.addCleanup(self.configuration.close)

    def test_unchanged_file_does_not_reload(self) -> None:
        self.assertFalse(self.configuration.poll_watchers())

    def test_change_reloads_and_notifies(self) -> None:
        seen = []
        self.configuration.on_change(lambda c: seen.append(c["Mode"]))
        self.files.write("settings.json", json.dumps({"Mode": "b"}))
        self.assertTrue(self.configuration.poll_watchers())
        self.assertEqual(self.configuration["Mode"], "b")
        self.assertEqual(seen, ["b"])

    def test_unsubscribe(self) -> None:
        seen = []
        unsubscribe = self.configuration.on_change(lambda c: seen.append(1))
        unsubscribe()
        self.files.write("settings.json", json.dumps({"Mode": "b"}))
        self.configuration.poll_watchers()
        self.assertEqual(seen, [])

    def test_invalid_edit_keeps_previous_values(self) -> None:
        seen = []
        self.configuration.on_change(lambda c: seen.append(1))
        self.files.write("settings.json", "{not json")
        with self.assertLogs("aloe_config.configuration", level="ERROR"):
            self.assertTrue(self.configuration.poll_watchers())
        self.assertEqual(self.configuration["Mode"], "a")
        self.assertEqual(seen, [])

    def test_failing_callback_does_not_block_others(self) -> None:
        seen = []

        def _boom(_):
            raise RuntimeError("callback failure")

        self.configuration.on_change(_boom)
        self.configuration.on_change(lambda c: seen.append(c["Mode"]))
        self.files.write("settings.json", json.dumps({"Mode": "c"}))
        with self.assertLogs("aloe_config.configuration", level="ERROR"):
            self.configuration.poll_watchers()
        self.assertEqual(seen, ["c"])

    def test_explicit_reload(self) -> None:
        seen = []
        self.configuration.on_change(lambda c: seen.append(c["Mode"]))
        self.files.write("settings.json", json.dumps({"Mode": "d"}))
        self.configuration.reload()
        self.assertEqual(self.configuration["Mode"], "d")
        self.assertEqual(seen, ["d"])

    def test_close_clears_watchers(self) -> None:
        self.assertEqual(len(self.configuration.watchers), 1)
        self.configuration.close()
        self.assertEqual(self.configuration.watchers, ())


if __name__ == "__main__":
    unittest.main()
