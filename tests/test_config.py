import os

import pytest

from trade_analyst.config import PipelineConfig


def test_defaults():
    config = PipelineConfig().validate()
    assert config.flow == "Export"
    assert (config.reference_year, config.target_year) == (2011, 2012)
    assert config.test_size == 0.2
    assert config.drop_recent is None


def test_from_env_reads_prefixed_variables():
    environ = {
        "TRADE_ANALYST_FLOW": "Import",
        "TRADE_ANALYST_REFERENCE_YEAR": "2009",
        "TRADE_ANALYST_TARGET_YEAR": "2010",
        "TRADE_ANALYST_TEST_SIZE": "0.25",
        "TRADE_ANALYST_DROP_RECENT": "3",
        "TRADE_ANALYST_EXCLUDE_UNCATEGORIZED": "no",
        "TRADE_ANALYST_COUNTRY": "Atlantis",
        "UNRELATED": "ignored",
    }
    config = PipelineConfig.from_env(environ)
    assert config.flow == "Import"
    assert config.reference_year == 2009
    assert config.target_year == 2010
    assert config.test_size == 0.25
    assert config.drop_recent == 3
    assert config.exclude_uncategorized is False
    assert config.country == "Atlantis"


def test_from_env_rejects_bad_values():
    with pytest.raises(ValueError, match="TRADE_ANALYST_N_ESTIMATORS"):
        PipelineConfig.from_env({"TRADE_ANALYST_N_ESTIMATORS": "many"})
    with pytest.raises(ValueError, match="boolean"):
        PipelineConfig.from_env({"TRADE_ANALYST_EXCLUDE_UNCATEGORIZED": "maybe"})


def test_overrides_skip_none_and_validate():
    config = PipelineConfig().with_overrides(flow=None, test_size=0.5, random_state=7)
    assert config.flow == "Export"
    assert config.test_size == 0.5
    assert config.random_state == 7

    with pytest.raises(ValueError, match="target_year"):
        PipelineConfig().with_overrides(target_year=2011)


@pytest.mark.parametrize(
    "overrides",
    [
        {"flow": "Transit"},
        {"test_size": 0.0},
        {"drop_recent": -1},
        {"feature_kind": "log"},
        {"missing_policy": "zero"},
        {"n_estimators": 0},
        {"top_n": 0},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ValueError):
        PipelineConfig(**overrides).validate()


def test_target_year_must_follow_reference_year():
    with pytest.raises(ValueError, match="year after reference_year"):
        PipelineConfig(reference_year=2010, target_year=2012).validate()
    assert PipelineConfig(reference_year=2010, target_year=2011).validate().target_year == 2011


def test_dotenv_in_working_directory_is_loaded(tmp_path, monkeypatch):
    environ = {k: v for k, v in os.environ.items() if not k.startswith("TRADE_ANALYST_")}
    monkeypatch.setattr(os, "environ", environ)
    (tmp_path / ".env").write_text("TRADE_ANALYST_FLOW=Import\nTRADE_ANALYST_N_ESTIMATORS=12\n")
    monkeypatch.chdir(tmp_path)

    config = PipelineConfig.from_env()
    assert config.flow == "Import"
    assert config.n_estimators == 12


def test_dotenv_loading_can_be_disabled(tmp_path, monkeypatch):
    environ = {k: v for k, v in os.environ.items() if not k.startswith("TRADE_ANALYST_")}
    monkeypatch.setattr(os, "environ", environ)
    (tmp_path / ".env").write_text("TRADE_ANALYST_FLOW=Import\n")
    monkeypatch.chdir(tmp_path)

    assert PipelineConfig.from_env(load_dotenv=False).flow == "Export"
