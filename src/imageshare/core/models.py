"""Pydantic models for data validation."""

from datetime import datetime

from pydantic import BaseModel, Field


class SoftwareRelease(BaseModel):
    """A single entry of the bundled title database."""

    name: str = Field(description="Software title")
    titleid: str = Field(description="Full 16 digit title ID")


class ImgurUploadResult(BaseModel):
    """Outcome of mirroring an upload to Imgur."""

    success: bool = Field(description="Upload success status")
    link: str | None = Field(default=None, description="Imgur page URL")
    qr_link: str | None = Field(default=None, description="Local QR code path")
    reason: str | None = Field(default=None, description="Failure message")
    response_received: bool = Field(
        default=False,
        description="Imgur answered the upload request",
    )


class UploadResult(BaseModel):
    """Data shown on the result panel after an upload."""

    title: str = Field(description="Resolved software title")
    upload_url: str | None = Field(default=None, description="Download path")
    qr_url: str | None = Field(default=None, description="QR code path")
    external_dir: str | None = Field(default=None, description="Storage directory")
    imgur: ImgurUploadResult | None = Field(default=None, description="Imgur result")


class HealthCheck(BaseModel):
    """Health check response model."""

    status: str = Field(description="Service status")
    timestamp: datetime = Field(description="Check timestamp")
    version: str = Field(description="API version")
    storage_writable: bool = Field(description="Upload directory status")
