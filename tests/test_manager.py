"""Tests for the fetch-or-provision secret lifecycle."""

import re
from unittest.mock import MagicMock

import pytest

from secretmgmt.models import ModuleManifest
from secretmgmt.secrets import ManifestCollector, ResolutionContext, SecretManager
from secretmgmt.utils.errors import TransportError

HEX_TOKEN = re.compile(r"^[0-9a-f]{32}$")


class TestSecretManager:
    """Test resolution of encryption key groups."""

    @pytest.fixture(autouse=True)
    def setup(self, fake_kms, fake_store):
        """Setup test environment."""
        self.kms = fake_kms
        self.store = fake_store
        self.context = ResolutionContext()
        self.manager = SecretManager(self.kms, self.store, self.context)

    def test_push_then_fetch_round_trip(self):
        """Pushed values come back unchanged."""
        values = {"secret_a": "abc", "key_b": "S2V5IG1hdGVyaWFs", "secret_unicode": "pässwörd"}

        self.manager.push("default", values)

        assert self.manager.fetch("default") == values

    def test_fetch_missing_blob_returns_none(self):
        """A key without a stored blob is not an error."""
        assert self.manager.fetch("default") is None
        assert ("download", "default") not in self.store.calls

    def test_provision_and_push_when_store_empty(self):
        """Missing blobs lead to generated values that are uploaded."""
        self.context.register("secret_a")

        values = self.manager.resolve_group("default", {"secret_a"})

        assert HEX_TOKEN.match(values["secret_a"])
        assert self.context.get("secret_a") == values["secret_a"]
        assert "default" in self.store.blobs
        assert self.manager.fetch("default") == values

    def test_group_names_may_be_any_iterable(self):
        values = self.manager.resolve_group("default", (name for name in ["secret_a", "key_b"]))

        assert set(values) == {"secret_a", "key_b"}
        assert self.manager.fetch("default") == values

    def test_caller_values_used_when_provisioning(self):
        """Values already in the context are uploaded instead of generated."""
        self.context.set("secret_a", "from-caller")

        self.manager.resolve_group("default", {"secret_a", "secret_b"})

        stored = self.manager.fetch("default")
        assert stored["secret_a"] == "from-caller"
        assert HEX_TOKEN.match(stored["secret_b"])

    def test_stored_values_win_over_caller_values(self):
        """Decrypted values overwrite anything the caller supplied."""
        self.manager.push("default", {"secret_a": "stored"})
        self.context.set("secret_a", "from-caller")
        self.store.calls.clear()

        self.manager.resolve_group("default", {"secret_a"})

        assert self.context.get("secret_a") == "stored"
        assert ("upload", "default") not in self.store.calls

    def test_force_rotate_skips_store_and_reuploads(self):
        """Forced rotation ignores the stored blob and pushes context values."""
        self.manager.push("default", {"secret_a": "stored"})
        self.context.set("secret_a", "new-value")
        self.store.calls.clear()

        self.manager.resolve_group("default", {"secret_a"}, force_rotate_values=True)

        assert self.store.calls == [("upload", "default")]
        assert self.manager.fetch("default") == {"secret_a": "new-value"}

    def test_empty_groups_are_skipped(self):
        """Groups without secrets cause no store interaction."""
        self.manager.resolve({"empty": set()})

        assert self.store.calls == []
        assert self.kms.calls == []

    def test_steps_within_group_are_ordered(self):
        """Generation finishes before encryption, which precedes upload."""
        calls = []
        generator = MagicMock()
        generator.populate.side_effect = lambda names, existing: calls.append("populate") or {"secret_a": "x"}
        kms = MagicMock(wraps=self.kms)
        kms.encrypt.side_effect = lambda key, data: calls.append("encrypt") or self.kms.encrypt(key, data)
        store = MagicMock(wraps=self.store)
        store.upload.side_effect = lambda key, data: calls.append("upload")

        SecretManager(kms, store, self.context, generator=generator).resolve({"default": {"secret_a"}})

        assert calls == ["populate", "encrypt", "upload"]

    def test_resolving_twice_is_idempotent(self):
        """A second resolution fetches instead of provisioning again."""
        groups = {"default": {"secret_a", "key_b"}}

        self.manager.resolve(groups)
        first = dict(self.context.values)
        uploads = [c for c in self.store.calls if c[0] == "upload"]

        self.manager.resolve(groups)

        assert self.context.values == first
        assert [c for c in self.store.calls if c[0] == "upload"] == uploads

    def test_transport_failure_aborts_run(self):
        """A failing group stops processing of later groups."""
        failing_store = MagicMock(wraps=self.store)
        failing_store.exists.side_effect = [False, TransportError("boom", response="<html>")]
        manager = SecretManager(self.kms, failing_store, self.context)

        with pytest.raises(TransportError):
            manager.resolve({"first": {"secret_a"}, "second": {"secret_b"}, "third": {"secret_c"}})

        assert "first" in self.store.blobs
        assert "third" not in self.store.blobs

    def test_upload_failure_propagates(self):
        """Upload errors are fatal."""
        failing_store = MagicMock(wraps=self.store)
        failing_store.upload.side_effect = TransportError("upload failed")

        with pytest.raises(TransportError):
            SecretManager(self.kms, failing_store, self.context).resolve({"default": {"secret_a"}})

    def test_corrupt_blob_is_transport_error(self):
        """Blobs that are not the expected document are rejected."""
        self.store.blobs["default"] = b"not base64 json"

        with pytest.raises(TransportError):
            self.manager.fetch("default")

    def test_blob_from_rotated_key_still_decrypts(self):
        """Blobs encrypted by an older, still enabled version remain readable."""
        self.manager.push("default", {"secret_a": "v1"})
        self.kms.create_version("default")

        assert self.manager.fetch("default") == {"secret_a": "v1"}


class TestEndToEnd:
    """Full collect and resolve runs against fake services."""

    def _run(self, kms, store, force=False):
        context = ResolutionContext(encryption_keys=["shared"])
        modules = [
            ModuleManifest("a", ["secret_a_pw"]),
            ModuleManifest("b", ["secret_b_pw"]),
        ]
        for module in modules:
            module.encryption_key = "shared"
        groups = ManifestCollector(["shared"], context=context).collect(modules)
        SecretManager(kms, store, context).resolve(groups, force_rotate_values=force)
        return groups, context

    def test_two_runs_share_values(self, fake_kms, fake_store):
        """A second run decrypts the blob uploaded by the first."""
        groups, first = self._run(fake_kms, fake_store)

        assert groups == {"shared": {"secret_a_pw", "secret_b_pw"}}
        assert HEX_TOKEN.match(first.get("secret_a_pw"))
        assert HEX_TOKEN.match(first.get("secret_b_pw"))
        assert [c for c in fake_store.calls if c[0] == "upload"] == [("upload", "shared")]

        _, second = self._run(fake_kms, fake_store)

        assert second.values == first.values
        assert [c for c in fake_store.calls if c[0] == "upload"] == [("upload", "shared")]

    def test_forced_run_regenerates_values(self, fake_kms, fake_store):
        """Forced rotation without caller values generates new ones."""
        _, first = self._run(fake_kms, fake_store)
        _, second = self._run(fake_kms, fake_store, force=True)

        assert second.get("secret_a_pw") != first.get("secret_a_pw")
        _, third = self._run(fake_kms, fake_store)
        assert third.values == second.values
