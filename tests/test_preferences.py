import json

import pytest

from ticketdesk.client.preferences import CURRENT_VERSION, PreferenceStore, Preferences


class TestPreferences:
    def test_toggle_favorite(self):
        prefs = Preferences().toggle_favorite(3)

        assert prefs.is_favorite(3)
        assert not prefs.toggle_favorite(3).is_favorite(3)

    def test_blank_email_is_forgotten(self):
        assert Preferences().remember_email("").remembered_email is None


class TestPreferenceStore:
    def test_missing_file_gives_defaults(self, tmp_path):
        prefs = PreferenceStore(tmp_path / "prefs.json").load()

        assert prefs == Preferences()

    def test_save_and_load(self, tmp_path):
        store = PreferenceStore(tmp_path / "prefs.json")
        store.save(Preferences().toggle_favorite(7).remember_email("ana@example.com"))

        prefs = store.load()

        assert prefs.favorites == frozenset({7})
        assert prefs.remembered_email == "ana@example.com"
        assert not (tmp_path / "prefs.json.tmp").exists()

    def test_legacy_list_is_migrated_once(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps([7, 3]))

        prefs = PreferenceStore(path).load()

        assert prefs.favorites == frozenset({3, 7})
        assert json.loads(path.read_text()) == {
            "version": CURRENT_VERSION,
            "favorites": [3, 7],
            "rememberedEmail": None,
        }

    def test_unknown_shape_rejected(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text('"favorites"')

        with pytest.raises(ValueError):
            PreferenceStore(path).load()
