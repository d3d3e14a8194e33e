import pandas as pd
import pytest

from trade_analyst import PipelineConfig, TradeDirectionPipeline
from trade_analyst.data import clean_trade_data
from trade_analyst.errors import EmptyResultError
from trade_analyst.run_pipeline import build_config, main, parse_args
from trade_analyst.summary import describe_records, top_categories, top_movers, yearly_totals


@pytest.fixture
def fast_config():
    return PipelineConfig(n_estimators=25)


def test_pipeline_end_to_end(synthetic_csv, tmp_path, fast_config, capsys):
    out = tmp_path / "out"
    result = TradeDirectionPipeline(data_path=synthetic_csv, config=fast_config, output_dir=out).run()

    assert result.wide.shape == (30, 9)
    assert "" not in result.wide.index
    assert result.changes.nominal.shape == (30, 8)
    assert len(result.labeled) == 30
    assert len(result.test) == 6
    assert set(result.train.index).isdisjoint(result.test.index)
    assert result.classification.confusion.to_numpy().sum() == 6
    assert result.classification.accuracy >= 0.8
    assert [c for c in result.labeled.columns if c != "direction"] == [
        f"change_{year}" for year in range(2007, 2012)
    ]

    for name in (
        "category_legend.csv",
        "export_wide.csv",
        "nominal_change.csv",
        "percent_change.csv",
        "confusion_matrix.csv",
        "predictions.csv",
        "trend_regression.csv",
        "top_categories.csv",
        "yearly_totals.csv",
    ):
        assert (out / name).exists(), name

    confusion = pd.read_csv(out / "confusion_matrix.csv", index_col=0)
    assert list(confusion.columns) == ["up", "down"]

    logged = capsys.readouterr().out
    assert "[pipeline] Excluding 1 record(s) without a category code." in logged
    assert "record(s) without 'trade_usd'" in logged


def test_pipeline_is_reproducible(synthetic_raw, fast_config):
    bundle = clean_trade_data(synthetic_raw)
    pipeline = TradeDirectionPipeline(config=fast_config, output_dir=None, verbose=False)
    first = pipeline.run_bundle(bundle)
    second = pipeline.run_bundle(bundle)
    pd.testing.assert_frame_equal(first.test, second.test)
    pd.testing.assert_frame_equal(first.classification.predictions, second.classification.predictions)


def test_pipeline_keeps_uncategorized_when_asked(synthetic_raw):
    config = PipelineConfig(n_estimators=10, exclude_uncategorized=False)
    result = TradeDirectionPipeline(config=config, output_dir=None, verbose=False).run_bundle(
        clean_trade_data(synthetic_raw)
    )
    assert "" in result.wide.index
    # Seen in 2010 only, so it carries no label.
    assert "" not in result.labeled.index


def test_pipeline_halts_on_missing_label_years(scenario_raw):
    config = PipelineConfig(reference_year=2011, target_year=2012)
    pipeline = TradeDirectionPipeline(config=config, output_dir=None, verbose=False)
    with pytest.raises(EmptyResultError, match="DirectionLabeler: year 2012"):
        pipeline.run_bundle(clean_trade_data(scenario_raw))


def test_summaries(synthetic_raw):
    bundle = clean_trade_data(synthetic_raw)
    frame = bundle.frame

    described = describe_records(frame)
    assert described.loc["Export", "records"] == 30 * 9 * 2 + 2
    assert described.loc["Import", "records"] == 30 * 9
    assert described.loc["Export", "missing_values"] == 1
    assert described.loc["Export", "countries"] == 2

    yearly = yearly_totals(frame)
    assert list(yearly.index) == list(range(2006, 2015))
    assert set(yearly.columns) == {"Export", "Import"}

    result = TradeDirectionPipeline(config=PipelineConfig(n_estimators=10), output_dir=None, verbose=False)
    run = result.run_bundle(bundle)
    top = top_categories(run.aggregated, bundle.legend, n=3)
    assert top["category_code"].tolist() == ["29", "27", "25"]
    assert top["category"].iloc[0] == "29_commodity_group_29"

    movers = top_movers(run.changes.percent, 2012, n=5)
    assert len(movers) == 5
    assert not movers["change"].isna().any()
    with pytest.raises(EmptyResultError):
        top_movers(run.changes.percent, 1990)


def test_cli_runs_and_prints_confusion_matrix(synthetic_csv, tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = main(
        [
            "--data",
            str(synthetic_csv),
            "--output-dir",
            str(tmp_path / "cli_out"),
            "--n-estimators",
            "15",
            "--quiet",
        ]
    )
    assert code == 0
    printed = capsys.readouterr().out
    assert "Direction classifier" in printed
    assert "[pipeline]" not in printed
    assert (tmp_path / "cli_out" / "predictions.csv").exists()


def test_cli_reports_stage_errors(synthetic_csv, tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = main(["--data", str(synthetic_csv), "--flow", "Re-export", "--quiet"])
    assert code == 1
    assert "[error] Aggregator: no records match flow=Re-export" in capsys.readouterr().err


def test_cli_reports_missing_file(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["--data", str(tmp_path / "absent.csv"), "--quiet"]) == 1
    assert "[error]" in capsys.readouterr().err


def test_cli_target_year_follows_reference_year(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = build_config(parse_args(["--reference-year", "2009"]))
    assert (config.reference_year, config.target_year) == (2009, 2010)

    with pytest.raises(ValueError, match="year after reference_year"):
        build_config(parse_args(["--reference-year", "2009", "--target-year", "2012"]))
