"""Tests for image and polling-job API endpoints."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from trackstudio.main import app
from trackstudio.models.image import GeneratedImage, PromptSuggestion
from trackstudio.models.song import Song
from trackstudio.services.image_workflow import ImageWorkflowService
from trackstudio.services.job_poller import PollJob
from trackstudio.services.notifications import notification_center

client = TestClient(app)

LYRICS = "[Verse 1]\nCity lights\n[Chorus]\nHold on"


def image(image_id: int, image_type: str, seq: int = 1, path: str = "") -> GeneratedImage:
    return GeneratedImage(
        id=image_id, song_id=1, image_type=image_type, sequence_number=seq, image_path=path,
    )


def messages() -> list[str]:
    return [n.message for n in notification_center.active()]


def never_done(_state):
    return False


class TestListImages:
    def test_sorted_by_song_structure(self, studio):
        studio.client.get_images_by_song.return_value = [
            image(1, "outro"), image(2, "chorus"), image(3, "verse", 2), image(4, "verse", 1),
        ]

        data = client.get("/api/songs/1/images").json()

        assert [v["image"]["id"] for v in data] == [4, 3, 2, 1]
        assert all(v["regenerating"] is False for v in data)


class TestPrompts:
    def test_generate_prompts(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics=LYRICS, genre="pop")
        studio.client.generate_prompt_from_lyrics.return_value = PromptSuggestion(prompt="neon city")

        response = client.post("/api/songs/1/images/prompts")

        assert response.json() == {"song_id": 1, "created": 2}
        assert studio.client.create_image_prompt.await_count == 2
        assert "Generated 2 image prompts successfully!" in messages()

    def test_no_sections_returns_422(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics="")

        response = client.post("/api/songs/1/images/prompts")

        assert response.status_code == 422
        assert response.json()["detail"] == "No valid sections found in lyrics"
        assert "No valid sections found in lyrics" in messages()
        studio.client.generate_prompt_from_lyrics.assert_not_awaited()

    def test_reanalyze(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics=LYRICS)
        studio.client.generate_prompt_from_lyrics.return_value = PromptSuggestion(prompt="p")

        response = client.post("/api/songs/1/images/reanalyze")

        assert response.json()["created"] == 2
        studio.client.delete_all_images_by_song.assert_awaited_once_with(1)

    def test_suggest_prompt(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics=LYRICS)
        studio.client.get_images_by_song.return_value = [image(5, "chorus")]
        studio.client.generate_prompt_from_lyrics.return_value = PromptSuggestion(
            prompt="hands reaching", negative_prompt="text",
        )

        response = client.post("/api/songs/1/images/5/suggest-prompt")

        assert response.json() == {"prompt": "hands reaching", "negative_prompt": "text"}
        request = studio.client.generate_prompt_from_lyrics.await_args.args[0]
        assert request.lyrics == "Hold on"

    def test_suggest_prompt_unknown_image(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics=LYRICS)
        studio.client.get_images_by_song.return_value = []

        assert client.post("/api/songs/1/images/5/suggest-prompt").status_code == 404

    def test_suggest_prompt_without_matching_section(self, studio):
        studio.client.get_song.return_value = Song(id=1, lyrics=LYRICS)
        studio.client.get_images_by_song.return_value = [image(5, "bridge")]

        response = client.post("/api/songs/1/images/5/suggest-prompt")

        assert response.status_code == 422
        assert "Could not find lyrics for this section" in messages()

    def test_update_prompt(self, studio):
        studio.client.update_image_prompt.return_value = image(5, "chorus")

        response = client.put("/api/images/5", json={"prompt": "stormy sea"})

        assert response.status_code == 200
        studio.client.update_image_prompt.assert_awaited_once_with(5, "stormy sea", "")


class TestGeneration:
    def test_regenerate_returns_job(self, studio):
        studio.images = AsyncMock(spec=ImageWorkflowService)
        studio.images.regenerate_image.return_value = PollJob(
            job_id="5", interval=3, timeout=120, is_complete=never_done,
        )

        data = client.post("/api/songs/1/images/5/regenerate").json()

        studio.images.regenerate_image.assert_awaited_once_with(1, 5)
        assert data["job"]["job_id"] == "5"
        assert data["job"]["status"] == "pending"
        assert data["job"]["timeout"] == 120

    def test_generate_missing_nothing_to_do(self, studio):
        studio.client.get_images_by_song.return_value = [image(5, "chorus", path="/5.png")]

        data = client.post("/api/songs/1/images/generate-missing").json()

        assert data == {"song_id": 1, "job": None}
        assert "All images have already been generated!" in messages()

    def test_generate_missing_returns_batch_job(self, studio):
        studio.images = AsyncMock(spec=ImageWorkflowService)
        studio.images.generate_missing_images.return_value = PollJob(
            job_id="song-1-missing", interval=3, timeout=180, is_complete=never_done,
            member_ids=["5", "6"],
        )

        data = client.post("/api/songs/1/images/generate-missing").json()

        assert data["job"]["job_id"] == "song-1-missing"
        assert data["job"]["member_ids"] == ["5", "6"]


class TestJobs:
    def _add_job(self, studio, job_id: str, status: str = "polling", members=None) -> PollJob:
        job = PollJob(
            job_id=job_id, interval=3, timeout=120, is_complete=never_done,
            member_ids=members or [job_id], status=status,
        )
        studio.poller._jobs[job_id] = job
        return job

    def test_list_jobs(self, studio):
        self._add_job(studio, "7")
        self._add_job(studio, "batch", members=["3", "4"])
        self._add_job(studio, "9", status="completed")

        data = client.get("/api/jobs").json()

        assert data["in_progress"] == ["3", "4", "7"]
        assert {j["job_id"] for j in data["jobs"]} == {"7", "batch", "9"}

    def test_get_job(self, studio):
        self._add_job(studio, "7")
        assert client.get("/api/jobs/7").json()["status"] == "polling"
        assert client.get("/api/jobs/8").status_code == 404

    def test_cancel_job(self, studio):
        job = self._add_job(studio, "7")

        response = client.delete("/api/jobs/7")

        assert response.json() == {"job_id": "7", "cancelled": True}
        assert job.token.cancelled

    def test_cancel_finished_job(self, studio):
        self._add_job(studio, "7", status="timed_out")
        assert client.delete("/api/jobs/7").status_code == 404


class TestNotifications:
    def test_list_and_dismiss(self, studio):
        notification = notification_center.warning("Still generating")

        data = client.get("/api/notifications").json()
        assert [(n["type"], n["message"]) for n in data] == [("warning", "Still generating")]

        assert client.delete(f"/api/notifications/{notification.id}").status_code == 200
        assert client.get("/api/notifications").json() == []
        assert client.delete(f"/api/notifications/{notification.id}").status_code == 404
