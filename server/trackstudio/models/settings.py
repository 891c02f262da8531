from pydantic import BaseModel, ConfigDict


DEFAULT_MASTER_PROMPT = (
    "Cinematic photography, professional composition, photorealistic, ultra detailed, "
    "sharp focus, dramatic lighting, rich colors, depth of field, rule of thirds, "
    "8K resolution, high-end camera quality, film grain texture, perfect exposure, "
    "color grading, natural skin tones, atmospheric mood, dynamic range, "
    "professional color correction, bokeh effect, pristine image quality"
)

DEFAULT_MASTER_NEGATIVE_PROMPT = (
    "text, letters, words, numbers, digits, symbols, typography, watermark, signature, "
    "logo, brand names, writing, captions, subtitles, titles, labels, tags, readable signs, "
    "store names, street signs, billboards, posters with text, written language, "
    "calligraphy, handwriting, printed text, ui elements, overlays, credit, "
    "copyright notice, alphabet characters, ugly, blurry, low quality, distorted, "
    "deformed, disfigured, cartoon, anime, CGI, artificial, fake, amateur, pixelated, "
    "grainy, noisy, oversaturated, undersaturated, washed out, glitch, artifacts"
)


class HostSettings(BaseModel):
    """Settings kept on this side of the wire, not by the orchestrator."""

    model_config = ConfigDict(extra="ignore")

    orchestrator_host: str = ""
    ai_host: str = ""


class StudioSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    master_prompt: str = ""
    master_negative_prompt: str = ""
    brand_logo_path: str = ""
    data_storage_path: str = "~/track-studio-data"
    orchestrator_host: str = ""
    ai_host: str = ""


class HostStatus(BaseModel):
    label: str
    url: str = ""
    service: str | None = None
    status: str | None = None
    error: str | None = None
