from .content import BilingualItem, ContentAggregate, DialogueOption, FilmStyle, Language
from .roster import CharacterProfile, CharacterRoster

__all__ = [
    "BilingualItem",
    "CharacterProfile",
    "CharacterRoster",
    "ContentAggregate",
    "DialogueOption",
    "FilmStyle",
    "Language",
]
