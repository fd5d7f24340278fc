# reposcribe/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _parse_timestamp(value: Optional[str]) -> datetime:
    """ISO-8601 (GitHub uses a trailing 'Z') -> aware datetime; junk sorts oldest."""
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class User:
    id: int
    login: str
    name: str | None = None
    avatar_url: str | None = None
    email: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "User":
        if not isinstance(data, dict) or "id" not in data or "login" not in data:
            raise ValueError("user payload must carry 'id' and 'login'")
        return cls(
            id=data["id"],
            login=data["login"],
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
            email=data.get("email"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "login": self.login,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "email": self.email,
        }


@dataclass(frozen=True)
class Repository:
    id: int
    name: str
    full_name: str = ""
    description: str | None = None
    html_url: str = ""
    language: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    updated_at: str = ""
    private: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        if not isinstance(data, dict) or "id" not in data or "name" not in data:
            raise ValueError("repository payload must carry 'id' and 'name'")
        return cls(
            id=data["id"],
            name=data["name"],
            full_name=data.get("full_name") or data["name"],
            description=data.get("description"),
            html_url=data.get("html_url") or "",
            language=data.get("language"),
            stargazers_count=int(data.get("stargazers_count") or 0),
            forks_count=int(data.get("forks_count") or 0),
            updated_at=data.get("updated_at") or "",
            private=bool(data.get("private", False)),
        )

    @property
    def updated(self) -> datetime:
        return _parse_timestamp(self.updated_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "html_url": self.html_url,
            "language": self.language,
            "stargazers_count": self.stargazers_count,
            "forks_count": self.forks_count,
            "updated_at": self.updated_at,
            "private": self.private,
        }


STATUS_GENERATING = "generating"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"


@dataclass
class Documentation:
    repository: Repository
    content: str = ""
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = STATUS_GENERATING
    id: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "repository": self.repository.to_dict(),
            "content": self.content,
            "generatedAt": self.generated_at.isoformat(),
            "status": self.status,
        }
