from __future__ import annotations

import secrets
from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict


class CharacterProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    image: str | None = None  # data URL: data:<mime>;base64,<payload>

    @property
    def is_active(self) -> bool:
        """名字为空的角色处于“创建中”状态，不会发送给生成服务"""
        return bool(self.name.strip())


class ActiveCharacters:
    """已命名角色的惰性视图，可重复迭代。"""

    def __init__(self, profiles: tuple[CharacterProfile, ...]) -> None:
        self._profiles = profiles

    def __iter__(self) -> Iterator[CharacterProfile]:
        return (p for p in self._profiles if p.is_active)

    def __bool__(self) -> bool:
        return any(p.is_active for p in self._profiles)


class CharacterRoster(BaseModel):
    """用户维护的角色列表（有序、不可变）。

    `next_seq` 只增不减，保证删除后 id 不会被复用。
    """

    model_config = ConfigDict(frozen=True)

    profiles: tuple[CharacterProfile, ...] = ()
    next_seq: int = 1

    def add(self) -> tuple[CharacterRoster, CharacterProfile]:
        profile = CharacterProfile(id=f"char-{self.next_seq}-{secrets.token_hex(3)}")
        roster = self.model_copy(
            update={"profiles": self.profiles + (profile,), "next_seq": self.next_seq + 1}
        )
        return roster, profile

    def update(self, character_id: str, name: str, image: str | None) -> CharacterRoster:
        if self.get(character_id) is None:
            return self
        profiles = tuple(
            p.model_copy(update={"name": name, "image": image}) if p.id == character_id else p
            for p in self.profiles
        )
        return self.model_copy(update={"profiles": profiles})

    def remove(self, character_id: str) -> CharacterRoster:
        profiles = tuple(p for p in self.profiles if p.id != character_id)
        if len(profiles) == len(self.profiles):
            return self
        return self.model_copy(update={"profiles": profiles})

    def get(self, character_id: str) -> CharacterProfile | None:
        for p in self.profiles:
            if p.id == character_id:
                return p
        return None

    def active_subset(self) -> ActiveCharacters:
        return ActiveCharacters(self.profiles)
