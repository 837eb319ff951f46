import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from aloe_config import ConfigurationBuilder, UserSecretsNotConfiguredError
from aloe_config.user_secrets import (
    SECRETS_FILE_NAME,
    USER_SECRETS_FALLBACK_VARIABLE,
    DefaultUserSecretsStore,
    UserSecretsSource,
    validate_secrets_id,
)


class DefaultUserSecretsStoreTests(unittest.TestCase):
    def test_missing_id_is_unavailable(self) -> None:
        store = DefaultUserSecretsStore(environ={"HOME": "/home/app"})
        self.assertIsNone(store.locate(None))
        self.assertIsNone(store.locate("   "))

    def test_home_location(self) -> None:
        store = DefaultUserSecretsStore(environ={"HOME": "/home/app"})
        self.assertEqual(
            store.locate("my-app"),
            Path("/home/app") / ".microsoft" / "usersecrets" / "my-app" / SECRETS_FILE_NAME,
        )

    def test_explicit_home(self) -> None:
        store = DefaultUserSecretsStore(environ={}, home="/srv/home")
        self.assertEqual(store.locate("x"), Path("/srv/home/.microsoft/usersecrets/x/secrets.json"))

    def test_appdata_wins_on_any_platform(self) -> None:
        store = DefaultUserSecretsStore(environ={"APPDATA": "C:/Users/app/AppData/Roaming", "HOME": "/home/app"})
        self.assertEqual(
            store.locate("my-app"),
            Path("C:/Users/app/AppData/Roaming") / "Microsoft" / "UserSecrets" / "my-app" / SECRETS_FILE_NAME,
        )

    def test_fallback_directory_when_no_home(self) -> None:
        store = DefaultUserSecretsStore(environ={USER_SECRETS_FALLBACK_VARIABLE: "/opt/secrets"})
        with mock.patch.object(Path, "home", side_effect=RuntimeError("no home")):
            self.assertEqual(store.locate("id"), Path("/opt/secrets/.microsoft/usersecrets/id/secrets.json"))

    def test_no_location_is_unavailable(self) -> None:
        store = DefaultUserSecretsStore(environ={})
        with mock.patch.object(Path, "home", side_effect=RuntimeError("no home")):
            self.assertIsNone(store.locate("id"))

    def test_invalid_ids_raise(self) -> None:
        for secrets_id in ("..", "a/b", "a\\b", "a:b"):
            with self.assertRaises(ValueError):
                validate_secrets_id(secrets_id)
        self.assertEqual(validate_secrets_id(" 4f1c-app "), "4f1c-app")


class AddUserSecretsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.base = Path(self._tmp.name)
        self.store = DefaultUserSecretsStore(environ={"HOME": str(self.base)})
        self.secrets_root = self.base / ".microsoft" / "usersecrets"

    def test_reads_secrets_file(self) -> None:
        secrets_dir = self.secrets_root / "app"
        secrets_dir.mkdir(parents=True)
        (secrets_dir / SECRETS_FILE_NAME).write_text(json.dumps({"Api": {"Key": "s3cret"}}), encoding="utf-8")

        builder = ConfigurationBuilder().add_user_secrets("app", store=self.store)
        self.assertIsInstance(builder.sources[0], UserSecretsSource)
        configuration = builder.build(watch=False)
        self.assertEqual(configuration["Api:Key"], "s3cret")

    def test_missing_secrets_file_is_optional(self) -> None:
        configuration = ConfigurationBuilder().add_user_secrets("absent", store=self.store).build(watch=False)
        self.assertEqual(configuration.as_dict(), {})

    def test_unconfigured_raises(self) -> None:
        with self.assertRaises(UserSecretsNotConfiguredError):
            ConfigurationBuilder().add_user_secrets(None, store=self.store)

    def test_invalid_id_raises(self) -> None:
        with self.assertRaises(ValueError):
            ConfigurationBuilder().add_user_secrets("bad/id", store=self.store)


if __name__ == "__main__":
    unittest.main()
