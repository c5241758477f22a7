"""Tests for file and directory translation."""

from pathlib import Path

import pytest

from llmtrans.core.exceptions import BackendError
from llmtrans.core.models import TranslationRequest
from llmtrans.core.pipeline import TranslationPipeline
from llmtrans.utils.batch import (
    filter_translated_files,
    find_files,
    output_path_for,
    parse_extensions,
    translate_directory,
    translate_document,
    translate_file
)


@pytest.fixture
def pipeline(app_config, registry, recorded_delays):
    return TranslationPipeline(app_config, registry=registry, sleeper=recorded_delays)


@pytest.fixture
def docs(tmp_path):
    (tmp_path / "guide.md").write_text("---\ntitle: Guide\n---\nHello world\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("Some notes", encoding="utf-8")
    (tmp_path / "guide_fr.md").write_text("Déjà traduit", encoding="utf-8")
    (tmp_path / "image.png").write_bytes(b"\x89PNG")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "deep.MD").write_text("Deep file", encoding="utf-8")
    return tmp_path


class TestNaming:
    """Test extension parsing and output naming."""

    def test_parse_extensions(self):
        assert parse_extensions("md, .TXT,,rst ") == [".md", ".txt", ".rst"]
        assert parse_extensions(" , ") == []

    def test_default_suffix_is_language(self):
        assert output_path_for(Path("/d/readme.md"), "", "", "fr") == Path("/d/readme_fr.md")

    def test_prefix_and_suffix(self):
        assert output_path_for(Path("/d/readme.md"), "-tr", "ru_", "ru") == Path("/d/ru_readme-tr.md")

    def test_filter_translated(self):
        files = [Path("a.md"), Path("a_fr.md"), Path("ru_b.md")]
        assert filter_translated_files(files, "", "", "fr") == [Path("a.md"), Path("ru_b.md")]
        assert filter_translated_files(files, "", "ru_", "ru") == [Path("a.md"), Path("a_fr.md")]

    def test_find_files_recursive_case_insensitive(self, docs):
        names = sorted(p.name for p in find_files(docs, [".md"]))
        assert names == ["deep.MD", "guide.md", "guide_fr.md"]


class TestTranslateFile:
    """Test single-file translation."""

    def test_frontmatter_preserved(self, pipeline, fake_backend, docs):
        out = docs / "guide_de.md"

        translate_file(pipeline, docs / "guide.md", out, TranslationRequest(text="", target_lang="de"))

        assert out.read_text(encoding="utf-8") == "---\ntitle: Guide\n---\n[de] Hello world"
        assert fake_backend.requests[0].text == "Hello world"

    def test_empty_file_rejected(self, pipeline, tmp_path):
        empty = tmp_path / "empty.md"
        empty.write_text("", encoding="utf-8")

        with pytest.raises(ValueError, match="empty"):
            translate_file(pipeline, empty, tmp_path / "out.md", TranslationRequest(text=""))


class TestTranslateDirectory:
    """Test directory mode."""

    def test_translates_pending_files(self, pipeline, docs):
        report = translate_directory(pipeline, docs, TranslationRequest(text="", target_lang="fr"))

        assert report.ok
        assert report.skipped == 1
        assert sorted(out.name for _, out in report.translated) == ["deep_fr.MD", "guide_fr.md", "notes_fr.txt"]
        assert (docs / "notes_fr.txt").read_text(encoding="utf-8") == "[fr] Some notes"
        assert (docs / "guide_fr.md").read_text(encoding="utf-8").startswith("---\ntitle: Guide\n---\n")
        assert report.tokens_used == 15

    def test_failure_is_recorded_and_run_continues(self, pipeline, fake_backend, fatal_error, docs):
        fake_backend.replies = [fatal_error]

        report = translate_directory(pipeline, docs, TranslationRequest(text="", target_lang="de"), extensions=".md")

        assert not report.ok
        assert len(report.failed) == 1
        assert "invalid api key" in report.failed[0][1]
        assert len(report.translated) == 2

    def test_no_matching_files(self, pipeline, docs):
        with pytest.raises(ValueError, match="no files found"):
            translate_directory(pipeline, docs, TranslationRequest(text=""), extensions=".rst")

    def test_no_valid_extensions(self, pipeline, docs):
        with pytest.raises(ValueError, match="no valid extensions"):
            translate_directory(pipeline, docs, TranslationRequest(text=""), extensions=",")

    def test_progress_callback(self, pipeline, docs):
        seen = []
        translate_directory(
            pipeline, docs, TranslationRequest(text="", target_lang="it"), extensions="txt",
            on_file=lambda i, n, src, dst: seen.append((i, n, src.name, dst.name))
        )
        assert seen == [(1, 1, "notes.txt", "notes_it.txt")]


class TestAnalysis:
    """Test analysis fields written into the output frontmatter."""

    def test_fields_added_to_existing_frontmatter(self, app_config, pipeline, fake_backend):
        app_config.settings.sentiment = True
        app_config.settings.tags_count = 2
        fake_backend.replies = ["Le marché monte"]
        fake_backend.analysis_replies = {
            "SENTIMENT:": ["SENTIMENT: positive (0.6)"],
            "TAGS:": ["TAGS: marché, bourse"],
        }

        output, result = translate_document(
            pipeline, "---\ntitle: Markets\n---\nThe market rises", TranslationRequest(text="", target_lang="fr")
        )

        assert output == (
            "---\ntitle: Markets\nsentiment: positive\nsentiment_score: 0.6\ntags:\n- marché\n- bourse\n---\n"
            "Le marché monte"
        )
        assert result.analysis == {"sentiment": "positive", "sentiment_score": 0.6, "tags": ["marché", "bourse"]}
        # analyses see the translation, not the source
        assert {text for _, text, _, _ in fake_backend.completions} == {"Le marché monte"}

    def test_frontmatter_created_for_plain_text(self, app_config, pipeline, fake_backend):
        app_config.settings.classify = True
        fake_backend.analysis_replies = {"TOPICS:": ["TOPICS: economics\nSCOPE: none\nTYPE: macro"]}

        output, _ = translate_document(pipeline, "Rates fell", TranslationRequest(text="", target_lang="de"))

        assert output == "---\ntopics:\n- economics\nnews_type:\n- macro\n---\n[de] Rates fell"

    def test_failed_analysis_leaves_document_unchanged(self, app_config, pipeline, fake_backend):
        app_config.settings.sentiment = True
        fake_backend.analysis_replies = {"SENTIMENT:": ["I cannot tell"]}

        output, result = translate_document(pipeline, "Hello", TranslationRequest(text="", target_lang="fr"))

        assert output == "[fr] Hello"
        assert result.analysis == {}

    def test_no_analysis_calls_when_disabled(self, pipeline, fake_backend, docs):
        translate_file(pipeline, docs / "guide.md", docs / "guide_de.md", TranslationRequest(text="", target_lang="de"))
        assert fake_backend.completions == []
