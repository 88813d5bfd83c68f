import json
from unittest.mock import Mock

import pytest

from app.auth.dependencies import CurrentUser
from app.core import redis_client as redis_store
from app.core.config import settings
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, RateLimitError, ValidationError
from app.models.resume import Resume
from app.resumes.extractor import DOCX_MEDIA_TYPE, PDF_MEDIA_TYPE
from app.resumes.service import ResumeService, compute_file_hash
from app.resumes.task_status import get_task_status

PDF_BYTES = b"%PDF-1.4\n% a resume\n" + b"x" * 64


@pytest.fixture
def service(storage, publisher):
    return ResumeService(storage=storage, publisher=publisher)


def status_of(fake_redis, task_id):
    return json.loads(fake_redis.get(f"{redis_store.RESUME_TASK_KEY_PREFIX}{task_id}"))


class TestUploadResume:
    def test_new_file_is_stored_recorded_and_queued(self, db, service, publisher, storage, fake_redis):
        result = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=7)

        assert result["duplicated"] is False
        assert result["taskId"]
        resume = db.query(Resume).filter(Resume.id == result["resumeId"]).one()
        assert resume.file_hash == compute_file_hash(PDF_BYTES)
        assert resume.status == "QUEUED"
        assert resume.owner_id == 7
        assert resume.sniffed_type == PDF_MEDIA_TYPE
        assert storage.read(resume.file_path) == PDF_BYTES

        publisher.publish_resume_parse.assert_called_once()
        message = publisher.publish_resume_parse.call_args.args[0]
        assert message == {
            "taskId": result["taskId"],
            "resumeId": resume.id,
            "ownerId": 7,
            "contentHash": resume.file_hash,
            "retryCount": 0,
        }

        record = status_of(fake_redis, result["taskId"])
        assert record["status"] == "QUEUED"
        assert record["progress"] == 0
        assert record["resumeId"] == resume.id
        assert fake_redis.get(f"{redis_store.RESUME_DEDUP_KEY_PREFIX}{resume.file_hash}") == str(resume.id)

    def test_same_bytes_twice_publish_once(self, db, service, publisher):
        first = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)
        second = service.upload_resume(db, PDF_BYTES, "renamed.pdf", PDF_MEDIA_TYPE, owner_id=2)

        assert second == {"taskId": None, "resumeId": first["resumeId"], "duplicated": True}
        assert publisher.publish_resume_parse.call_count == 1
        assert db.query(Resume).count() == 1

    def test_duplicate_found_in_database_when_cache_is_empty(self, db, service, publisher, fake_redis):
        first = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)
        fake_redis.store.clear()

        second = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)

        assert second["duplicated"] is True
        assert second["resumeId"] == first["resumeId"]
        # Cache is back-filled from the durable store
        assert fake_redis.get(f"{redis_store.RESUME_DEDUP_KEY_PREFIX}{compute_file_hash(PDF_BYTES)}") == str(first["resumeId"])

    def test_stale_cache_entry_falls_through(self, db, service, publisher, fake_redis):
        file_hash = compute_file_hash(PDF_BYTES)
        fake_redis.set(f"{redis_store.RESUME_DEDUP_KEY_PREFIX}{file_hash}", "999")

        result = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)

        assert result["duplicated"] is False
        publisher.publish_resume_parse.assert_called_once()

    def test_concurrent_insert_resolves_to_the_winner(self, db, service, publisher, storage, monkeypatch):
        winner = Resume(
            owner_id=1,
            file_name="cv.pdf",
            file_path="resumes/winner.pdf",
            file_hash=compute_file_hash(PDF_BYTES),
            status="QUEUED",
        )
        db.add(winner)
        db.commit()
        # Both requests passed the lookup before either inserted
        monkeypatch.setattr(service, "_find_by_hash", lambda session, file_hash: None)

        result = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=2)

        assert result == {"taskId": None, "resumeId": winner.id, "duplicated": True}
        publisher.publish_resume_parse.assert_not_called()
        assert db.query(Resume).count() == 1
        assert list(storage.base_dir.rglob("*.pdf")) == []

    def test_losing_insert_keeps_a_shared_object(self, db, service, storage, monkeypatch):
        file_hash = compute_file_hash(PDF_BYTES)
        object_name = storage.save(storage.build_object_name(file_hash, "cv.pdf"), PDF_BYTES)
        db.add(Resume(owner_id=1, file_name="cv.pdf", file_path=object_name, file_hash=file_hash, status="QUEUED"))
        db.commit()
        monkeypatch.setattr(service, "_find_by_hash", lambda session, file_hash: None)

        assert service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=2)["duplicated"] is True
        assert storage.read(object_name) == PDF_BYTES

    def test_failed_commit_removes_the_stored_file(self, db, service, publisher, storage, monkeypatch):
        monkeypatch.setattr(db, "commit", Mock(side_effect=RuntimeError("database gone")))

        with pytest.raises(RuntimeError):
            service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)

        assert list(storage.base_dir.rglob("*.pdf")) == []
        publisher.publish_resume_parse.assert_not_called()

    def test_publish_failure_marks_task_failed_but_upload_succeeds(self, db, service, publisher, fake_redis):
        publisher.publish_resume_parse.side_effect = ConnectionError("broker down")

        result = service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)

        assert result["duplicated"] is False
        record = status_of(fake_redis, result["taskId"])
        assert record["status"] == "FAILED"
        assert "broker down" in record["errorMessage"]

    @pytest.mark.parametrize(
        "content, declared",
        [
            (b"", PDF_MEDIA_TYPE),
            (PDF_BYTES, "image/png"),
            (PDF_BYTES, None),
            (PDF_BYTES, DOCX_MEDIA_TYPE),
            (b"PK\x03\x04zip", PDF_MEDIA_TYPE),
        ],
    )
    def test_invalid_uploads_are_rejected(self, db, service, publisher, content, declared):
        with pytest.raises(ValidationError):
            service.upload_resume(db, content, "cv.pdf", declared, owner_id=1)
        publisher.publish_resume_parse.assert_not_called()
        assert db.query(Resume).count() == 0

    def test_oversized_upload_is_rejected(self, db, service, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
        with pytest.raises(ValidationError) as exc_info:
            service.upload_resume(db, PDF_BYTES, "cv.pdf", PDF_MEDIA_TYPE, owner_id=1)
        assert exc_info.value.details["size"] == len(PDF_BYTES)


class TestBatchUpload:
    def test_each_file_succeeds_or_fails_alone(self, db, service):
        other_pdf = b"%PDF-1.5 another resume"
        result = service.batch_upload(
            db,
            [
                (PDF_BYTES, "a.pdf", PDF_MEDIA_TYPE),
                (PDF_BYTES, "a-copy.pdf", PDF_MEDIA_TYPE),
                (b"not a resume", "notes.txt", "text/plain"),
                (other_pdf, "b.pdf", PDF_MEDIA_TYPE),
            ],
            owner_id=1,
        )

        assert [item["status"] for item in result["items"]] == ["QUEUED", "DUPLICATE", "FAILED", "QUEUED"]
        assert (result["queued"], result["duplicated"], result["failed"]) == (2, 1, 1)
        assert result["items"][2]["errorMessage"]

    def test_too_many_files(self, db, service, monkeypatch):
        monkeypatch.setattr(settings, "MAX_BATCH_UPLOAD_FILES", 1)
        with pytest.raises(ValidationError):
            service.batch_upload(db, [(PDF_BYTES, "a.pdf", PDF_MEDIA_TYPE)] * 2, owner_id=1)

    def test_rate_limited_per_owner(self, db, service, monkeypatch):
        monkeypatch.setattr(settings, "MAX_BATCH_UPLOADS_PER_MINUTE", 1)
        service.batch_upload(db, [(PDF_BYTES, "a.pdf", PDF_MEDIA_TYPE)], owner_id=1)

        with pytest.raises(RateLimitError):
            service.batch_upload(db, [(PDF_BYTES, "a.pdf", PDF_MEDIA_TYPE)], owner_id=1)
        # Other owners have their own window
        service.batch_upload(db, [(PDF_BYTES, "a.pdf", PDF_MEDIA_TYPE)], owner_id=2)


class TestResumeQueries:
    def test_owner_check(self, db, make_resume, service):
        resume = make_resume(owner_id=1)
        assert service.get_resume(db, resume.id, CurrentUser(id=1)).id == resume.id
        assert service.get_resume(db, resume.id, CurrentUser(id=2, roles=["admin"])).id == resume.id
        with pytest.raises(AuthorizationError):
            service.get_resume(db, resume.id, CurrentUser(id=2))
        with pytest.raises(NotFoundError):
            service.get_resume(db, 12345, CurrentUser(id=1))

    def test_list_is_scoped_to_owner_and_status(self, db, make_resume, service):
        make_resume(owner_id=1, status="QUEUED")
        make_resume(owner_id=1, status="FAILED")
        make_resume(owner_id=2, status="FAILED")

        total, rows = service.list_resumes(db, owner_id=1)
        assert total == 2
        total, rows = service.list_resumes(db, owner_id=1, status="failed")
        assert total == 1 and rows[0].status == "FAILED"
        with pytest.raises(ValidationError):
            service.list_resumes(db, owner_id=1, status="ARCHIVED")

    def test_reprocess_clears_marker_and_requeues(self, db, make_resume, service, publisher, fake_redis):
        resume = make_resume(status="FAILED")
        resume.error_message = "boom"
        db.commit()
        marker = f"{redis_store.RESUME_IDEMPOTENT_KEY_PREFIX}{resume.id}"
        fake_redis.set(marker, "1", ex=3600)

        result = service.reprocess(db, resume.id, CurrentUser(id=1))

        db.refresh(resume)
        assert resume.status == "QUEUED"
        assert resume.error_message is None
        assert fake_redis.get(marker) is None
        publisher.publish_resume_parse.assert_called_once()
        assert publisher.publish_resume_parse.call_args.args[0]["taskId"] == result["taskId"]

    @pytest.mark.parametrize("status", ["QUEUED", "PARSING"])
    def test_reprocess_refused_while_a_worker_holds_the_resume(self, db, make_resume, service, publisher, fake_redis, status):
        resume = make_resume(status=status)
        marker = f"{redis_store.RESUME_IDEMPOTENT_KEY_PREFIX}{resume.id}"
        fake_redis.set(marker, "1", ex=3600)

        with pytest.raises(ConflictError) as exc_info:
            service.reprocess(db, resume.id, CurrentUser(id=1))

        assert exc_info.value.status_code == 409
        assert fake_redis.get(marker) == "1"
        db.refresh(resume)
        assert resume.status == status
        publisher.publish_resume_parse.assert_not_called()

    def test_reprocess_requeues_an_unclaimed_resume(self, db, make_resume, service, publisher):
        # e.g. the broker was down when the upload was queued
        resume = make_resume(status="QUEUED")

        service.reprocess(db, resume.id, CurrentUser(id=1))

        publisher.publish_resume_parse.assert_called_once()


class TestTaskStatus:
    def test_unknown_task(self):
        assert get_task_status("missing") == {"taskId": "missing", "status": "NOT_FOUND", "progress": 0}

    def test_status_write_failure_is_swallowed(self, monkeypatch):
        broken = Mock()
        broken.get.side_effect = ConnectionError("redis down")
        broken.setex.side_effect = ConnectionError("redis down")
        monkeypatch.setattr(redis_store, "redis_client", broken)

        from app.models.enums import TaskStatus
        from app.resumes.task_status import update_task_status

        record = update_task_status("t-1", TaskStatus.PROCESSING, 10, resume_id=1)
        assert record["status"] == "PROCESSING"
        assert get_task_status("t-1")["status"] == "NOT_FOUND"
