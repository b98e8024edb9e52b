from pydantic import BaseModel


class UploadResponse(BaseModel):
    filename: str
    originalname: str
    mimetype: str | None = None
    size: int
    path: str
