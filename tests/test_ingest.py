"""
Tests for the text import pipeline.
"""
import pytest

from sentence_builder.config import Settings
from sentence_builder.services.errors import InvalidArgumentError, UnsupportedFormatError
from sentence_builder.services.ingest import TextIngestor, extract_text, is_supported_file_format
from sentence_builder.services.storage import FileStatus


@pytest.fixture
def ingestor(store, orchestrator, test_settings):
    return TextIngestor(store, orchestrator, settings=test_settings)


class TestFileFormats:
    """Test suite for file format handling."""

    @pytest.mark.parametrize("name", ["notes.txt", "NOTES.TXT", "paper.pdf", "memo.doc", "memo.docx"])
    def test_supported(self, name):
        """Test recognised extensions."""
        assert is_supported_file_format(name)

    @pytest.mark.parametrize("name", ["image.png", "archive.tar.gz", "", None])
    def test_unsupported(self, name):
        """Test everything else is rejected."""
        assert not is_supported_file_format(name)

    def test_extract_plain_text(self, tmp_path):
        """Test .txt files are read as UTF-8."""
        path = tmp_path / "story.txt"
        path.write_text("Café au lait.", encoding="utf-8")

        assert extract_text(path) == "Café au lait."

    @pytest.mark.parametrize("suffix", [".pdf", ".docx", ".csv"])
    def test_extract_other_formats(self, tmp_path, suffix):
        """Test documents and unknown types cannot be extracted."""
        path = tmp_path / f"file{suffix}"
        path.write_bytes(b"binary")

        with pytest.raises(UnsupportedFormatError):
            extract_text(path)


class TestIngest:
    """Test suite for TextIngestor.ingest."""

    def test_summary(self, ingestor):
        """Test the import summary counts sentences and words."""
        summary = ingestor.ingest("The cat sat. The dog ran!")

        assert summary.sentences == 2
        assert summary.words == 6
        assert summary.ngram_n == 3

    def test_word_and_pair_counts(self, ingestor, store):
        """Test starts, ends and pairs are persisted."""
        ingestor.ingest("The cat sat. The dog ran!")

        assert store.find_word_by_text("the").sentence_start_count == 2
        assert store.find_word_by_text(".").sentence_end_count == 1
        assert store.find_word_by_text("!").sentence_end_count == 1
        successors = store.successors_of("the")
        assert [(s.text, s.probability) for s in successors] == [("cat", 0.5), ("dog", 0.5)]

    def test_ngram_counts(self, ingestor, store):
        """Test n-grams of the configured order are persisted."""
        ingestor.ingest("The cat sat. The dog ran!")

        assert [s.text for s in store.find_ngrams_by_text(3, "the cat sat")] == ["."]
        assert len(store.find_ngrams_by_order(3, 100)) == 5

    def test_ngrams_disabled(self, store, orchestrator):
        """Test n-gram processing can be switched off."""
        settings = Settings(PROCESS_NGRAMS=False)
        summary = TextIngestor(store, orchestrator, settings=settings).ingest("The cat sat on the mat.")

        assert summary.ngram_n is None
        assert store.find_ngrams_by_order(3, 100) == []

    def test_models_trained(self, ingestor, orchestrator):
        """Test the in-memory Markov models learn the import."""
        ingestor.ingest("The cat sat on the mat.")

        assert orchestrator.is_trained(1)
        assert orchestrator.is_trained(2)
        assert orchestrator.generate(1, start_token="the").text.startswith("the")

    def test_repeat_import_not_double_counted(self, ingestor, orchestrator):
        """Test reloading from the store does not replay the new text twice."""
        ingestor.ingest("the cat sat.")
        ingestor.ingest("the cat sat.")

        assert orchestrator.markov[1].transitions["the"]["cat"] == 2

    def test_ngram_model_replayed_after_import(self, ingestor, orchestrator):
        """Test N-gram generation sees the imported text."""
        ingestor.ingest("The cat sat on the mat.")

        result = orchestrator.generate(3, start_token="the cat sat", max_words=10)

        assert result.text == "the cat sat on the mat ."

    def test_blank_text(self, ingestor):
        """Test empty imports are rejected."""
        with pytest.raises(InvalidArgumentError):
            ingestor.ingest(" \n ")

    @pytest.mark.parametrize("n", [1, 2, 6, 7])
    def test_invalid_ngram_order(self, ingestor, store, n):
        """Test only orders 3-5 are stored; 1 and 2 are served from word pairs."""
        with pytest.raises(InvalidArgumentError):
            ingestor.ingest("The cat sat.", ngram_n=n)

        assert store.word_count() == 0

    def test_import_allows_retry_after_failed_reload(self, ingestor, orchestrator):
        """Test an import lets a previously failed N-gram reload run again."""
        assert orchestrator.suggest(4, "the cat sat on", 5) == []

        ingestor.ingest("The cat sat on the mat.", ngram_n=4)

        assert orchestrator.suggest(4, "the cat sat on", 5) == ["the"]
        assert orchestrator.is_trained(4)


class TestIngestFile:
    """Test suite for TextIngestor.ingest_file."""

    def test_text_file(self, ingestor, tmp_path):
        """Test a .txt file is imported."""
        path = tmp_path / "story.txt"
        path.write_text("The cat sat. The dog ran.", encoding="utf-8")

        assert ingestor.ingest_file(path).sentences == 2

    def test_pdf_file(self, ingestor, tmp_path):
        """Test PDFs are recognised but not extractable."""
        path = tmp_path / "paper.pdf"
        path.write_bytes(b"%PDF-1.4")

        with pytest.raises(UnsupportedFormatError):
            ingestor.ingest_file(path)

    def test_unknown_extension(self, ingestor, tmp_path):
        """Test unknown file types are rejected before reading."""
        with pytest.raises(UnsupportedFormatError):
            ingestor.ingest_file(tmp_path / "image.png")

    def test_missing_file(self, ingestor, tmp_path):
        """Test a missing file propagates FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ingestor.ingest_file(tmp_path / "missing.txt")

    def test_history_records_completed_import(self, ingestor, store, tmp_path):
        """Test a successful file import is listed with its word count."""
        path = tmp_path / "story.txt"
        path.write_text("The cat sat. The dog ran.", encoding="utf-8")

        summary = ingestor.ingest_file(path)

        files = store.list_imported_files()
        assert len(files) == 1
        assert files[0].file_id == summary.file_id
        assert files[0].filename == "story.txt"
        assert files[0].file_path == str(path)
        assert files[0].status is FileStatus.COMPLETED
        assert files[0].word_count == summary.words == 6
        assert files[0].error_message is None

    def test_history_records_failed_import(self, ingestor, store, tmp_path):
        """Test a failed extraction is listed as FAILED with its message."""
        path = tmp_path / "paper.pdf"
        path.write_bytes(b"%PDF-1.4")

        with pytest.raises(UnsupportedFormatError):
            ingestor.ingest_file(path)

        (record,) = store.list_imported_files()
        assert record.status is FileStatus.FAILED
        assert ".pdf" in record.error_message
        assert record.word_count == 0

    def test_history_records_missing_file(self, ingestor, store, tmp_path):
        """Test a missing file is recorded as FAILED before the error propagates."""
        with pytest.raises(FileNotFoundError):
            ingestor.ingest_file(tmp_path / "missing.txt")

        assert store.list_imported_files()[0].status is FileStatus.FAILED

    def test_rejected_extension_not_recorded(self, ingestor, store, tmp_path):
        """Test unsupported extensions leave no history entry."""
        with pytest.raises(UnsupportedFormatError):
            ingestor.ingest_file(tmp_path / "image.png")

        assert store.list_imported_files() == []

    def test_history_newest_first(self, ingestor, store, tmp_path):
        """Test the history lists the latest import first."""
        for name in ("one.txt", "two.txt"):
            path = tmp_path / name
            path.write_text("The cat sat.", encoding="utf-8")
            ingestor.ingest_file(path)

        assert [f.filename for f in store.list_imported_files()] == ["two.txt", "one.txt"]
