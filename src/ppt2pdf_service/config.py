"""
Runtime configuration.

Values come from the process environment, optionally seeded from a `.env`
file in the working directory. The Google Drive credentials are mandatory
for the API server; everything else has a default.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

REQUIRED_CREDENTIAL_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "GOOGLE_REFRESH_TOKEN",
)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class MissingCredentialsError(RuntimeError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")
        self.missing = missing


@dataclass(frozen=True)
class DriveCredentials:
    client_id: str
    client_secret: str
    redirect_uri: str
    refresh_token: str


def load_credentials(env: dict[str, str] | None = None) -> DriveCredentials:
    """Read the four OAuth values, raising if any of them is absent or empty."""
    env = os.environ if env is None else env
    missing = [name for name in REQUIRED_CREDENTIAL_VARS if not env.get(name)]
    if missing:
        raise MissingCredentialsError(missing)
    return DriveCredentials(
        client_id=env["GOOGLE_CLIENT_ID"],
        client_secret=env["GOOGLE_CLIENT_SECRET"],
        redirect_uri=env["GOOGLE_REDIRECT_URI"],
        refresh_token=env["GOOGLE_REFRESH_TOKEN"],
    )


def _truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    upload_dir: Path = Path("./uploads")
    max_upload_mb: int = 50
    convert_settle_sec: float = 2.0
    remote_timeout_sec: float = 60.0
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:4200", "http://localhost:8501"]
    )
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            upload_dir=Path(os.getenv("UPLOAD_DIR", "./uploads")).resolve(),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "50")),
            convert_settle_sec=float(os.getenv("CONVERT_SETTLE_SEC", "2.0")),
            remote_timeout_sec=float(os.getenv("REMOTE_TIMEOUT_SEC", "60")),
            cors_origins=_split_csv(
                os.getenv("CORS_ORIGINS", "http://localhost:4200,http://localhost:8501")
            ),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            reload=_truthy(os.getenv("RELOAD", "false")),
        )
