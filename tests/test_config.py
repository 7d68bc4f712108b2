import pytest

from tabwife.config import FACETS, EngineSettings, MatchConfig


def test_presets_expand_to_facet_sets():
    assert MatchConfig.from_mode("relaxed").enabled == ("domain",)
    assert MatchConfig.from_mode("Normal").enabled == ("domain", "subdomain", "port", "path", "query")
    assert MatchConfig.from_mode("strict").enabled == FACETS
    assert MatchConfig() == MatchConfig.from_mode("normal")


def test_legacy_modes_are_translated():
    assert MatchConfig.from_mode("exact").enabled == FACETS
    assert MatchConfig.from_mode("domain").enabled == ("domain", "subdomain")
    assert MatchConfig.from_mode("subdomain").enabled == ("domain", "subdomain", "port")
    assert MatchConfig.from_mode("path").enabled == ("domain", "subdomain", "path")
    assert MatchConfig.from_mode("fullpath").enabled == ("domain", "subdomain")


def test_invalid_configs_are_rejected():
    with pytest.raises(ValueError):
        MatchConfig.from_mode("fuzzy")
    with pytest.raises(ValueError):
        MatchConfig.from_facets(["domain", "scheme"])
    with pytest.raises(ValueError):
        MatchConfig.from_flags({"domain": False})
    with pytest.raises(ValueError):
        MatchConfig.from_flags({"hostname": True})


def test_engine_settings_defaults():
    settings = EngineSettings.from_mapping(None)

    assert settings.match_config == MatchConfig()
    assert settings.keep_newest
    assert settings.auto_organize
    assert settings.consolidation_threshold == 3


def test_engine_settings_reads_extension_keys():
    settings = EngineSettings.from_mapping(
        {
            "matchMode": "path",
            "keepNewest": False,
            "notifyDuplicates": False,
            "autoOrganizeTabs": False,
            "consolidationThreshold": 5,
        }
    )

    assert settings.match_config.enabled == ("domain", "subdomain", "path")
    assert not settings.keep_newest
    assert not settings.notify_duplicates
    assert not settings.auto_organize
    assert settings.consolidation_threshold == 5


def test_match_facets_take_precedence_over_mode():
    settings = EngineSettings.from_mapping(
        {"matchMode": "strict", "matchFacets": {"domain": True, "path": True}}
    )

    assert settings.match_config.enabled == ("domain", "path")


def test_settings_mapping_round_trip():
    settings = EngineSettings(
        match_config=MatchConfig.from_mode("relaxed"),
        keep_newest=False,
        consolidation_threshold=4,
    )

    assert EngineSettings.from_mapping(settings.to_mapping()) == settings


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        EngineSettings(consolidation_threshold=0)
