from datetime import datetime

import pytest

from screening.core.exceptions import FileProcessingError, StorageWriteError
from screening.models.candidate import PIIRecord
from screening.services.candidate_store import CandidateStore
from screening.services.file_storage import safe_file_name
from screening.services.tabular_storage import CANDIDATES, CANDIDATES_PII


class TestTabularStorage:
    def test_rows_come_back_in_insertion_order(self, storage):
        for candidate_id in ("CAND_3", "CAND_1", "CAND_2"):
            storage.append_row(CANDIDATES, {"candidate_id": candidate_id, "overall_score": 50})
        assert [r["candidate_id"] for r in storage.read_rows(CANDIDATES)] == ["CAND_3", "CAND_1", "CAND_2"]

    def test_unknown_column_is_rejected(self, storage):
        with pytest.raises(StorageWriteError):
            storage.append_row(CANDIDATES, {"candidate_id": "CAND_1", "full_name": "Jane Doe"})

    def test_unknown_table_is_rejected(self, storage):
        with pytest.raises(StorageWriteError):
            storage.append_row("resumes", {"candidate_id": "CAND_1"})

    def test_update_row(self, storage):
        storage.append_row(CANDIDATES, {"candidate_id": "CAND_1", "contact_status": "Not Contacted"})
        assert storage.update_row(CANDIDATES, "candidate_id", "CAND_1", {"contact_status": "Emailed"})
        assert not storage.update_row(CANDIDATES, "candidate_id", "CAND_9", {"contact_status": "Emailed"})
        assert storage.find_row(CANDIDATES, "candidate_id", "CAND_1")["contact_status"] == "Emailed"

    def test_ping(self, storage):
        assert storage.ping()


def test_pii_row_carries_consent_and_retention(storage):
    store = CandidateStore(storage, retention_days=30)
    store.store_pii("CAND_1", PIIRecord(full_name="Jane Doe", email="jane@example.com"), now=datetime(2024, 5, 6))

    row = storage.read_rows(CANDIDATES_PII)[0]
    assert row["data_consent"] == "TRUE"
    assert row["retention_until"] == "2024-06-05"
    assert row["phone"] == ""


class TestFileStorage:
    def test_create_returns_uri_of_written_file(self, file_storage):
        uri = file_storage.create_file("CAND_1_RESUME_cv.pdf", b"%PDF-1.4", "application/pdf")
        path = file_storage.folder / "CAND_1_RESUME_cv.pdf"
        assert uri == path.as_uri()
        assert path.read_bytes() == b"%PDF-1.4"

    def test_name_collisions_get_a_suffix(self, file_storage):
        first = file_storage.create_file("cv.txt", b"one")
        second = file_storage.create_file("cv.txt", b"two")
        assert first != second
        assert second.endswith("cv_1.txt")
        assert [p.read_bytes() for p in file_storage.list_files()] == [b"one", b"two"]

    def test_unsafe_characters_are_replaced(self):
        assert safe_file_name('a/b:c?.pdf') == "a_b_c_.pdf"
        assert safe_file_name("   ") == "attachment"

    def test_write_failure_raises(self, file_storage, tmp_path):
        file_storage.folder = tmp_path / "missing"
        with pytest.raises(FileProcessingError):
            file_storage.create_file("cv.pdf", b"%PDF")

    def test_ping(self, file_storage):
        assert file_storage.ping()
