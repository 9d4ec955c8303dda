"""Runtime configuration loaded from the environment."""

import os
from typing import List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ConfigurationError

DEFAULT_ENV_FILE = ".env.local"

FocalStrategyName = Literal["neural", "saliency", "auto", "none"]


class StoreSettings(BaseModel):
    """Credentials and location of the S3-compatible bucket."""

    account_id: str = ""
    access_key: str = ""
    secret_key: str = ""
    bucket: str = ""
    endpoint_url: Optional[str] = None
    region: str = "auto"

    @property
    def resolved_endpoint(self) -> Optional[str]:
        if self.endpoint_url:
            return self.endpoint_url
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None


class IngestSettings(BaseModel):
    """Configuration for ingestion runs."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    manifest_dir: str = "content/manifests"
    model_path: str = "models/ultraface-320.onnx"
    image_concurrency: int = Field(default=3, ge=1)
    raw_concurrency: int = Field(default=6, ge=1)
    focal_strategy: FocalStrategyName = "auto"
    store_attempts: int = Field(default=3, ge=1)
    brand: str = "milk & henny"

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = DEFAULT_ENV_FILE,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "IngestSettings":
        """
        Build settings from environment variables.

        ``env_file`` is loaded first without overriding variables that are
        already set. Pass ``environ`` to read from a mapping instead of
        ``os.environ`` (the env file is then ignored).
        """
        if environ is None:
            if env_file and os.path.exists(env_file):
                load_dotenv(env_file, override=False)
            environ = os.environ

        def read_int(name: str, default: int) -> int:
            raw = environ.get(name)
            if raw in (None, ""):
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc

        store = StoreSettings(
            account_id=environ.get("R2_ACCOUNT_ID", ""),
            access_key=environ.get("R2_ACCESS_KEY", ""),
            secret_key=environ.get("R2_SECRET_KEY", ""),
            bucket=environ.get("R2_BUCKET", ""),
            endpoint_url=environ.get("MEDIA_INGEST_ENDPOINT_URL") or None,
        )
        values = {
            "store": store,
            "manifest_dir": environ.get("MEDIA_INGEST_MANIFEST_DIR") or "content/manifests",
            "model_path": environ.get("MEDIA_INGEST_MODEL_PATH") or "models/ultraface-320.onnx",
            "image_concurrency": read_int("MEDIA_INGEST_IMAGE_CONCURRENCY", 3),
            "raw_concurrency": read_int("MEDIA_INGEST_RAW_CONCURRENCY", 6),
            "focal_strategy": environ.get("MEDIA_INGEST_FOCAL_STRATEGY") or "auto",
            "store_attempts": read_int("MEDIA_INGEST_STORE_ATTEMPTS", 3),
        }
        if environ.get("MEDIA_INGEST_BRAND"):
            values["brand"] = environ["MEDIA_INGEST_BRAND"]
        try:
            return cls(**values)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def missing_store_credentials(self) -> List[str]:
        missing = []
        if not self.store.account_id and not self.store.endpoint_url:
            missing.append("R2_ACCOUNT_ID")
        if not self.store.access_key:
            missing.append("R2_ACCESS_KEY")
        if not self.store.secret_key:
            missing.append("R2_SECRET_KEY")
        if not self.store.bucket:
            missing.append("R2_BUCKET")
        return missing

    def require_store_credentials(self) -> StoreSettings:
        """Return the store settings, or fail naming every missing variable."""
        missing = self.missing_store_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing object-store credentials: {', '.join(missing)}. "
                "Set them in the environment or in .env.local."
            )
        return self.store
