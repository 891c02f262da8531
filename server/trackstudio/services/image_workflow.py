"""Section images for a song: prompts from lyrics, generation, and polling."""

import logging
import time

from trackstudio.config import settings
from trackstudio.models.image import (
    GeneratedImage,
    ImagePromptCreate,
    ImageView,
    PromptRequest,
    PromptSuggestion,
)
from trackstudio.models.song import Song
from trackstudio.services.job_poller import JobPoller, PollJob
from trackstudio.services.lyrics_sectioner import (
    extract_sections,
    find_section,
    section_sort_key,
)
from trackstudio.services.notifications import NotificationCenter
from trackstudio.services.orchestrator import OrchestratorClient, OrchestratorError

logger = logging.getLogger(__name__)


class NoSectionsFoundError(Exception):
    """The lyrics contain no lyric lines to build section prompts from."""

    def __init__(self, message: str = "No valid sections found in lyrics"):
        super().__init__(message)


class SectionNotFoundError(Exception):
    """No lyrics section matches the image's section type."""


def sort_images(images: list[GeneratedImage]) -> list[GeneratedImage]:
    """Sort images by song structure, then by sequence number within a type."""
    return sorted(images, key=lambda i: section_sort_key(i.image_type, i.sequence_number))


def _image_is_generated(image: GeneratedImage | None) -> bool:
    return image is not None and image.is_generated


class ImageWorkflowService:
    """Drives prompt creation and image generation for a song's sections."""

    def __init__(
        self,
        client: OrchestratorClient,
        poller: JobPoller,
        notifications: NotificationCenter,
    ) -> None:
        self.client = client
        self.poller = poller
        self.notifications = notifications
        # Completion time per image id, used by views to bust image caches
        self.image_versions: dict[int, float] = {}
        # Images whose generation request is still in flight
        self._triggering: set[int] = set()

    async def list_images(self, song_id: int) -> list[ImageView]:
        images = sort_images(await self.client.get_images_by_song(song_id))
        busy = {int(i) for i in self.poller.in_progress if i.isdigit()} | self._triggering
        return [
            ImageView(
                image=image,
                regenerating=image.id in busy,
                version=self.image_versions.get(image.id),
            )
            for image in images
        ]

    # ── Prompts ──────────────────────────────────────────────────────────

    async def generate_all_prompts(self, song: Song) -> int:
        """Create one image prompt per lyrics section; return how many succeeded."""
        sections = extract_sections(song.lyrics)
        if not sections:
            raise NoSectionsFoundError()

        self.notifications.info("Analyzing lyrics and generating prompts...")
        created = 0
        for section in sections:
            try:
                suggestion = await self.client.generate_prompt_from_lyrics(PromptRequest(
                    lyrics=section.lyrics,
                    section_type=section.kind,
                    genre=song.genre,
                    background_style=song.background_style,
                ))
                await self.client.create_image_prompt(song.id, ImagePromptCreate(
                    song_id=song.id,
                    prompt=suggestion.prompt,
                    negative_prompt=suggestion.negative_prompt,
                    image_type=section.kind,
                    sequence_number=section.sequence_number,
                    width=settings.image_width,
                    height=settings.image_height,
                    model=settings.image_model,
                ))
                created += 1
            except Exception:
                logger.exception(
                    "Failed to generate prompt for %s of song %d", section.label, song.id,
                )

        self.notifications.success(f"Generated {created} image prompts successfully!")
        return created

    async def reanalyze_prompts(self, song: Song) -> int:
        """Delete every image of the song and rebuild prompts from its lyrics."""
        if not extract_sections(song.lyrics):
            raise NoSectionsFoundError()
        self.notifications.info("Deleting old prompts...")
        await self.client.delete_all_images_by_song(song.id)
        self.image_versions.clear()
        return await self.generate_all_prompts(song)

    async def generate_prompt_for_image(
        self, song: Song, image: GeneratedImage,
    ) -> PromptSuggestion:
        """Suggest a prompt for one image from the lyrics of its section."""
        section = find_section(
            extract_sections(song.lyrics), image.image_type, image.sequence_number,
        )
        if section is None:
            raise SectionNotFoundError("Could not find lyrics for this section")

        self.notifications.info("Generating prompt from lyrics...")
        suggestion = await self.client.generate_prompt_from_lyrics(PromptRequest(
            lyrics=section.lyrics,
            section_type=image.image_type,
            genre=song.genre,
            background_style=song.background_style,
        ))
        self.notifications.success("Prompt generated! Review and save it.")
        return suggestion

    async def update_prompt(
        self, image_id: int, prompt: str, negative_prompt: str = "",
    ) -> GeneratedImage:
        image = await self.client.update_image_prompt(image_id, prompt, negative_prompt)
        self.notifications.success("Image prompt updated")
        return image

    # ── Generation ───────────────────────────────────────────────────────

    def _fetch_image(self, song_id: int):
        async def fetch(image_id: str) -> GeneratedImage | None:
            images = await self.client.get_images_by_song(song_id)
            return next((i for i in images if str(i.id) == image_id), None)

        return fetch

    def _fetch_images(self, song_id: int):
        async def fetch(image_ids: list[str]) -> dict[str, GeneratedImage]:
            wanted = set(image_ids)
            images = await self.client.get_images_by_song(song_id)
            return {str(i.id): i for i in images if str(i.id) in wanted}

        return fetch

    def _mark_generated(self, job: PollJob) -> None:
        now = time.time()
        for member in job.member_ids:
            self.image_versions[int(member)] = now

    async def _trigger(self, image_id: int) -> None:
        self._triggering.add(image_id)
        try:
            await self.client.regenerate_image(image_id)
        finally:
            self._triggering.discard(image_id)

    async def regenerate_image(self, song_id: int, image_id: int) -> PollJob:
        """Trigger generation of one image and poll until its file exists."""
        await self._trigger(image_id)
        self.notifications.success("Generating image...")

        return self.poller.start(
            image_id,
            self._fetch_image(song_id),
            _image_is_generated,
            on_complete=self._mark_generated,
            success_message="Image generated successfully!",
            timeout_message=(
                "Image generation is taking longer than expected. Please check back later."
            ),
        )

    async def generate_missing_images(self, song_id: int) -> PollJob | None:
        """Trigger every image without a file and poll the triggered ones as one batch.

        A failed trigger does not stop the others. If none could be
        triggered, the last error is raised.
        """
        images = await self.client.get_images_by_song(song_id)
        missing = [i for i in images if not i.is_generated]
        if not missing:
            self.notifications.info("All images have already been generated!")
            return None

        self.notifications.info(f"Generating {len(missing)} missing images...")
        triggered: list[int] = []
        failure: OrchestratorError | None = None
        for image in missing:
            try:
                await self._trigger(image.id)
            except OrchestratorError as e:
                logger.warning("Failed to trigger generation of image %d: %s", image.id, e)
                failure = e
            else:
                triggered.append(image.id)

        if not triggered:
            raise failure
        if failure is not None:
            self.notifications.error(
                f"Failed to start {len(missing) - len(triggered)} of {len(missing)} images",
            )

        def on_timeout(job: PollJob) -> str:
            pending = JobPoller.pending_members(job, _image_is_generated)
            return f"{len(pending)} images are still generating. Check back later."

        return self.poller.start_batch(
            triggered,
            self._fetch_images(song_id),
            _image_is_generated,
            batch_id=f"song-{song_id}-missing",
            on_complete=self._mark_generated,
            success_message=f"All {len(triggered)} images generated successfully!",
            timeout_message=on_timeout,
        )
