from pydantic import BaseModel, ConfigDict


class GeneratedImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    song_id: int = 0
    prompt: str = ""
    negative_prompt: str = ""
    image_path: str = ""
    image_type: str = ""
    sequence_number: int = 0
    width: int = 0
    height: int = 0
    model: str = ""
    created_at: str | None = None

    @property
    def is_generated(self) -> bool:
        return self.image_path != ""


class ImagePromptCreate(BaseModel):
    song_id: int
    prompt: str
    negative_prompt: str = ""
    image_type: str
    sequence_number: int = 1
    width: int = 1920
    height: int = 1080
    model: str = "stable-diffusion-xl"


class ImagePromptUpdate(BaseModel):
    prompt: str
    negative_prompt: str = ""


class PromptRequest(BaseModel):
    lyrics: str
    section_type: str
    genre: str = ""
    background_style: str = ""


class PromptSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: str
    negative_prompt: str = ""


class ImageView(BaseModel):
    image: GeneratedImage
    regenerating: bool = False
    version: float | None = None
