"""Tests for the CLI entry point."""

from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from prsift_cli.cli import main
from prsift_cli.commands import review as review_module
from prsift_core.errors import ConfigurationError, ReviewCancelled, TransportError

REVIEW_ARGS = ["review", "--owner", "acme", "--repo", "api", "--pr", "5"]


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("PRSIFT_CONFIG", raising=False)


@pytest.fixture
def pipeline(mocker):
    """Patch every collaborator the review command builds and return the pipeline class mock."""
    mocker.patch("prsift_cli.commands.review.GitHubHost")
    mocker.patch("prsift_cli.commands.review.get_reviewer", return_value=MagicMock())
    mocker.patch("prsift_cli.commands.review.get_judge", return_value=None)
    pipeline_cls = mocker.patch("prsift_cli.commands.review.ReviewPipeline")
    pipeline_cls.return_value.run.return_value = MagicMock(submitted=True)
    return pipeline_cls


def _settings(pipeline_cls):
    return pipeline_cls.call_args.kwargs["settings"]


class TestCLIValidation:
    @pytest.mark.parametrize("missing", ["--owner", "--repo", "--pr"])
    def test_missing_required_flag(self, missing, pipeline):
        args = list(REVIEW_ARGS)
        idx = args.index(missing)
        del args[idx : idx + 2]
        result = CliRunner().invoke(main, args)
        assert result.exit_code == 2
        assert missing in result.output
        pipeline.assert_not_called()

    def test_non_positive_pr_number(self, pipeline):
        result = CliRunner().invoke(main, ["review", "--owner", "acme", "--repo", "api", "--pr", "0"])
        assert result.exit_code == 2
        pipeline.assert_not_called()

    def test_invalid_provider(self, pipeline):
        result = CliRunner().invoke(main, REVIEW_ARGS + ["--provider", "openai"])
        assert result.exit_code == 2
        assert "openai" in result.output

    def test_judge_min_score_out_of_range(self, pipeline):
        result = CliRunner().invoke(main, REVIEW_ARGS + ["--judge-min-score", "1.5"])
        assert result.exit_code == 2

    def test_missing_github_token(self, monkeypatch, pipeline):
        monkeypatch.delenv("GITHUB_TOKEN")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 2
        assert "GITHUB_TOKEN" in result.output
        pipeline.assert_not_called()

    def test_missing_anthropic_key(self, monkeypatch, pipeline):
        monkeypatch.delenv("ANTHROPIC_API_KEY")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 2
        assert "ANTHROPIC_API_KEY" in result.output

    def test_missing_gemini_key_for_gemini_provider(self, pipeline):
        result = CliRunner().invoke(main, REVIEW_ARGS + ["--provider", "gemini"])
        assert result.exit_code == 2
        assert "GEMINI_API_KEY" in result.output

    def test_judge_with_default_model_needs_gemini_key(self, pipeline):
        result = CliRunner().invoke(main, REVIEW_ARGS + ["--judge"])
        assert result.exit_code == 2
        assert "GEMINI_API_KEY" in result.output

    def test_invalid_config_file(self, tmp_path, pipeline):
        (tmp_path / ".prsift.yml").write_text("provider: openai\n")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 2
        assert "openai" in result.output
        pipeline.assert_not_called()


class TestReviewCommand:
    def test_runs_pipeline_with_defaults(self, pipeline):
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 0, result.output
        settings = _settings(pipeline)
        assert settings.provider == "claude"
        assert settings.dry_run is False
        assert settings.judge.enabled is False
        run = pipeline.return_value.run
        run.assert_called_once()
        assert run.call_args.args == ("acme", "api", 5)
        assert "Review posted successfully!" in result.output

    def test_flags_reach_settings(self, monkeypatch, pipeline):
        monkeypatch.setenv("GEMINI_API_KEY", "gem")
        result = CliRunner().invoke(
            main,
            REVIEW_ARGS
            + [
                "--provider",
                "gemini",
                "--dry-run",
                "--judge",
                "--judge-model",
                "claude-haiku-4-5",
                "--judge-min-score",
                "0.7",
                "--timeout",
                "120",
            ],
        )
        assert result.exit_code == 0, result.output
        settings = _settings(pipeline)
        assert settings.provider == "gemini"
        assert settings.dry_run is True
        assert settings.judge.enabled is True
        assert settings.judge.model == "claude-haiku-4-5"
        assert settings.judge.min_score == 0.7
        assert settings.timeout == 120.0
        review_module.GitHubHost.assert_called_once_with(token="ghp_test", timeout=120.0)

    def test_config_file_values_used(self, tmp_path, pipeline):
        (tmp_path / ".prsift.yml").write_text("dry_run: true\njudge_min_score: 0.9\n")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 0, result.output
        settings = _settings(pipeline)
        assert settings.dry_run is True
        assert settings.judge.min_score == 0.9

    def test_custom_config_path(self, tmp_path, pipeline):
        cfg = tmp_path / "custom.yml"
        cfg.write_text("dry_run: true\n")
        result = CliRunner().invoke(main, ["--config", str(cfg)] + REVIEW_ARGS)
        assert result.exit_code == 0, result.output
        assert _settings(pipeline).dry_run is True

    def test_dry_run_does_not_report_posting(self, pipeline):
        pipeline.return_value.run.return_value = MagicMock(submitted=False)
        result = CliRunner().invoke(main, REVIEW_ARGS + ["--dry-run"])
        assert result.exit_code == 0
        assert "Review posted successfully!" not in result.output

    def test_run_receives_cancel_token_with_timeout(self, pipeline):
        CliRunner().invoke(main, REVIEW_ARGS + ["--timeout", "30"])
        cancel = pipeline.return_value.run.call_args.kwargs["cancel"]
        assert 0 < cancel.remaining() <= 30


class TestReviewFailures:
    def test_transport_error_exits_with_stage(self, pipeline):
        pipeline.return_value.run.side_effect = TransportError(
            "fetching", "fetch PR diff", "acme/api#5", RuntimeError("502")
        )
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 1
        assert "Review failed during fetching" in result.output
        assert "fetch PR diff acme/api#5: 502" in result.output

    def test_cancelled_run_exits_with_stage(self, pipeline):
        pipeline.return_value.run.side_effect = ReviewCancelled("generating", reason="deadline exceeded")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 1
        assert "deadline exceeded during generating" in result.output

    def test_configuration_error_from_pipeline_is_usage_error(self, pipeline):
        pipeline.return_value.run.side_effect = ConfigurationError("GitHub host not set.")
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 2
        assert "GitHub host not set." in result.output

    def test_missing_provider_sdk_is_usage_error(self, mocker, pipeline):
        mocker.patch(
            "prsift_cli.commands.review.get_reviewer",
            side_effect=ImportError("anthropic package is required: pip install anthropic"),
        )
        result = CliRunner().invoke(main, REVIEW_ARGS)
        assert result.exit_code == 2
        assert "pip install anthropic" in result.output


def test_version_flag():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "prsift" in result.output
