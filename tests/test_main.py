import csv
from unittest.mock import AsyncMock, patch

import pytest

import extract_homepages
import extract_rule_levels
import main
from helpers import FakeToolAdapter, success


def test_parser_defaults():
    args = main.build_parser().parse_args([])

    assert args.tool == "axe"
    assert args.max_urls == 10
    assert args.concurrency == 1
    assert args.no_sitemap is False
    assert args.success_rate is None


def test_missing_input_exits_with_error(tmp_path):
    assert main.main(["--input", str(tmp_path / "missing.csv")]) == 1


def test_unavailable_tool_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.delenv("WAVE_API_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    source = tmp_path / "repos.csv"
    source.write_text("Repositorio,Homepage\nacme/site,https://acme.dev\n", encoding="utf-8")

    assert main.main(["--tool", "wave", "--input", str(source), "--output-csv", str(tmp_path / "out.csv")]) == 1


def test_full_run_writes_summary(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    source = tmp_path / "repos.csv"
    source.write_text(
        "Repositorio,Homepage\n"
        "acme/site,https://acme.dev\n"
        "acme/site,https://acme.dev\n"
        "foo/bar,https://foo.dev\n",
        encoding="utf-8",
    )
    out_csv = tmp_path / "out.csv"
    adapter = FakeToolAdapter({"https://acme.dev": success("https://acme.dev", errors=1, warnings=3)})

    with patch.object(main, "build_adapter", AsyncMock(return_value=adapter)):
        code = main.main([
            "--input", str(source),
            "--output-csv", str(out_csv),
            "--output-json", str(tmp_path / "out.json"),
            "--no-sitemap",
            "--repo-pause", "0",
            "--url-interval", "0",
        ])

    assert code == 0
    assert adapter.calls == ["https://acme.dev", "https://foo.dev"]
    with open(out_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["Repositorio"] for r in rows] == ["acme/site", "foo/bar"]
    assert rows[0]["ErrorsTotal"] == "1"
    assert rows[0]["TaxaSucessoAcessibilidade"] == "0.75"
    assert (tmp_path / "out.json").exists()


def test_read_tokens_merges_all_sources():
    env = {
        "GITHUB_TOKENS": "a, b,,",
        "TOKEN_1": "c",
        "TOKEN_2": "a",
        "GITHUB_TOKEN": "d",
    }

    assert extract_homepages.read_tokens(env) == ["a", "b", "c", "d"]


def test_read_tokens_empty_environment():
    assert extract_homepages.read_tokens({}) == []


def test_extract_rule_levels_writes_table(tmp_path):
    source = tmp_path / "rule-descriptions.md"
    source.write_text(
        "| Rule ID | Description | Impact | Tags |\n"
        "| :------ | :---------- | :----- | :--- |\n"
        "| [image-alt](https://x) | Alt text | Critical | cat.text-alternatives, wcag2a, wcag111 |\n"
        "| [region](https://x) | Landmarks | Moderate | cat.keyboard, best-practice |\n",
        encoding="utf-8",
    )
    out = tmp_path / "levels.csv"

    assert extract_rule_levels.extract(str(source), str(out)) == 0
    with open(out, newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [
            ["rule_id", "conformity_level"],
            ["image-alt", "A"],
            ["region", "Best Practice"],
        ]


def test_extract_rule_levels_missing_input(tmp_path):
    assert extract_rule_levels.extract(str(tmp_path / "nope.md"), str(tmp_path / "out.csv")) == 1


@pytest.mark.parametrize("flag", ["--max-urls", "--concurrency"])
def test_parser_rejects_non_positive_counts(flag):
    with pytest.raises(SystemExit):
        main.build_parser().parse_args([flag, "0"])
