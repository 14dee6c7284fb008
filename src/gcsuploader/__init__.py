"""gcsuploader - resumable, chunked uploads to cloud object storage."""

from gcsuploader.client import UploadSession, run, start_upload
from gcsuploader.core import UploadConfig, UploadStatus

__all__ = ["UploadConfig", "UploadSession", "UploadStatus", "run", "start_upload"]
