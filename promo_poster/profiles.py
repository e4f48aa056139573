"""Local stand-in for the hosted user/config provider.

Users, their QR codes, template overrides and poster placement live in a
single JSON file using the backend's snake_case column names.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .geometry import DEFAULT_POSTER_CONFIG, PosterConfig

log = logging.getLogger(__name__)

ROLES = ("promoter", "member", "promo_ambassador", "product_selector", "admin")


def _parse_qr_config(cfg: Any, owner: str) -> Optional[PosterConfig]:
    if not isinstance(cfg, dict):
        return None
    try:
        return PosterConfig.from_dict(cfg)
    except (TypeError, ValueError) as e:
        log.warning("Ignoring malformed qr_config for %s: %s", owner, e)
        return None


@dataclass
class UserProfile:
    nickname: str
    roles: List[str] = field(default_factory=lambda: ["member"])
    qr_code: str = ""  # data URL, http(s) URL or file path
    master_template: Optional[str] = None
    qr_config: Optional[PosterConfig] = None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "UserProfile":
        roles = rec.get("roles") or ([rec["role"]] if rec.get("role") else ["member"])
        nickname = str(rec.get("nickname", ""))
        return cls(
            nickname=nickname,
            roles=[str(r) for r in roles if str(r) in ROLES],
            qr_code=str(rec.get("qr_code") or ""),
            master_template=rec.get("master_template") or None,
            qr_config=_parse_qr_config(rec.get("qr_config"), nickname),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "nickname": self.nickname,
            "roles": list(self.roles),
            "qr_code": self.qr_code,
            "master_template": self.master_template,
            "qr_config": self.qr_config.to_dict() if self.qr_config else None,
        }


@dataclass
class GlobalSettings:
    master_template: Optional[str] = None
    qr_config: Optional[PosterConfig] = None

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "GlobalSettings":
        return cls(
            master_template=rec.get("master_template") or None,
            qr_config=_parse_qr_config(rec.get("qr_config"), "shared settings"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "master_template": self.master_template,
            "qr_config": self.qr_config.to_dict() if self.qr_config else None,
        }


@dataclass(frozen=True)
class PosterInputs:
    template: Optional[str]
    qr_code: Optional[str]
    config: PosterConfig


def resolve_inputs(user: Optional[UserProfile],
                   global_settings: Optional[GlobalSettings] = None,
                   template_override: Optional[str] = None,
                   config_override: Optional[PosterConfig] = None) -> PosterInputs:
    """Pick what a master-poster render should use.

    Template: override, then the user's own, then the shared one.
    Placement: override, then the user's, then the shared one, then the
    built-in default.
    """
    gs = global_settings or GlobalSettings()
    template = template_override or (user.master_template if user else None) or gs.master_template
    config = (config_override
              or (user.qr_config if user else None)
              or gs.qr_config
              or DEFAULT_POSTER_CONFIG)
    qr_code = (user.qr_code if user else "") or None
    return PosterInputs(template=template, qr_code=qr_code, config=config)


class ProfileStore:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.data: Dict[str, Any] = {"users": {}, "global": {}}
        if self.path.exists():
            self.load()

    def load(self) -> None:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                incoming = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("Profile store %s unreadable, starting empty: %s", self.path, e)
            return
        if not isinstance(incoming, dict):
            log.warning("Profile store %s has unexpected layout, starting empty", self.path)
            return
        users = incoming.get("users")
        glob = incoming.get("global")
        self.data = {
            "users": users if isinstance(users, dict) else {},
            "global": glob if isinstance(glob, dict) else {},
        }

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(self.data, f, ensure_ascii=False, indent=2)

    def list_users(self) -> List[str]:
        return sorted(self.data["users"].keys())

    def get_user(self, nickname: str) -> Optional[UserProfile]:
        rec = self.data["users"].get(nickname)
        if not isinstance(rec, dict):
            return None
        return UserProfile.from_record({"nickname": nickname, **rec})

    def save_user(self, profile: UserProfile) -> None:
        if not profile.nickname.strip():
            raise ValueError("nickname is required")
        self.data["users"][profile.nickname] = profile.to_record()
        self.save()

    def global_settings(self) -> GlobalSettings:
        return GlobalSettings.from_record(self.data.get("global") or {})

    def save_global_settings(self, settings: GlobalSettings, by: UserProfile) -> None:
        if not by.has_role("admin"):
            raise PermissionError(f"{by.nickname} may not change the shared poster settings")
        self.data["global"] = settings.to_record()
        self.save()
        log.info("Shared poster settings updated by %s", by.nickname)
