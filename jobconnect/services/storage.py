"""
Resume storage: object storage first, local disk when it is unavailable
"""
import asyncio
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests

from jobconnect.services.fallback import FallbackChain
from jobconnect.utils.config import Settings
from jobconnect.utils.exceptions import StorageFailure
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)


def resume_object_name(applicant_name: str, prefix: str = "resume1", now_ms: Optional[int] = None) -> str:
    """``<prefix>/<Applicant_Name>_<epoch ms>.pdf``"""
    safe = re.sub(r"[^A-Za-z0-9_.-]", "", "_".join((applicant_name or "applicant").split())) or "applicant"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}/{safe}_{stamp}.pdf"


class ResumeStore(ABC):
    """Stores a resume and returns the URL it can be fetched from"""

    name = "resume_store"

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...


class ObjectStorageResumeStore(ResumeStore):
    """Supabase-compatible storage REST API"""

    name = "object_storage"

    def __init__(self, base_url: Optional[str], service_key: Optional[str], bucket: str = "resume", timeout: float = 30.0):
        self.base_url = (base_url or "").rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)

    def _headers(self, content_type: Optional[str] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        if content_type:
            headers["Content-Type"] = content_type
            headers["x-upsert"] = "false"
        return headers

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        if not self.configured:
            raise StorageFailure("Object storage is not configured", backend=self.name, path=path)
        try:
            resp = requests.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                data=data,
                headers=self._headers(content_type),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StorageFailure(f"Object storage upload failed: {e}", backend=self.name, path=path, cause=e) from e
        return self.public_url(path)

    def _delete_sync(self, path: str) -> None:
        if not self.configured:
            return
        resp = requests.delete(
            f"{self.base_url}/storage/v1/object/{self.bucket}",
            json={"prefixes": [path]},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        url = await asyncio.to_thread(self._upload_sync, path, data, content_type)
        logger.info(f"Uploaded resume to object storage: {url}")
        return url

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._delete_sync, path)


class LocalResumeStore(ResumeStore):
    """Files under ``root``, served by the app at ``/uploads/resumes``"""

    name = "local_disk"

    def __init__(self, root: str = "uploads/resumes", public_base_url: str = "http://localhost:4000"):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _target(self, path: str) -> Path:
        return self.root / Path(path).name

    def _upload_sync(self, path: str, data: bytes) -> str:
        target = self._target(path)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageFailure(f"Local resume write failed: {e}", backend=self.name, path=str(target), cause=e) from e
        return f"{self.public_base_url}/uploads/resumes/{target.name}"

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        url = await asyncio.to_thread(self._upload_sync, path, data)
        logger.info(f"Saved resume locally: {url}")
        return url

    async def delete(self, path: str) -> None:
        self._target(path).unlink(missing_ok=True)


class FallbackResumeStore(ResumeStore):
    name = "fallback"

    def __init__(self, primary: ResumeStore, fallback: ResumeStore):
        self.primary = primary
        self.fallback = fallback

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        chain = FallbackChain(
            primary=lambda: self.primary.upload(path, data, content_type),
            fallback=lambda: self.fallback.upload(path, data, content_type),
            name="resume_upload",
        )
        try:
            outcome = await chain.run()
        except Exception as e:
            raise StorageFailure("Resume could not be stored. Please try again later.", backend=self.name, path=path, cause=e) from e
        return outcome.value

    async def delete(self, path: str) -> None:
        for store in (self.primary, self.fallback):
            try:
                await store.delete(path)
            except Exception as e:
                logger.warning(f"Could not delete {path} from {store.name}: {e}")


def build_resume_store(settings: Settings) -> ResumeStore:
    return FallbackResumeStore(
        primary=ObjectStorageResumeStore(settings.storage_url, settings.storage_key, settings.storage_bucket),
        fallback=LocalResumeStore(settings.local_upload_dir, settings.public_base_url),
    )
