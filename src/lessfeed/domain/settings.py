"""UI/session settings persisted as a single blob."""

from pydantic import BaseModel, ConfigDict, Field

from lessfeed.domain.models import Lang, ListMode, TextScale


class UISettings(BaseModel):
    """
    Settings snapshot. Unknown keys in a stored blob are ignored so older
    and newer app versions can share the same record.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    lang: str = Lang.EN.value
    list_mode: str = ListMode.FEED.value
    text_scale: str = TextScale.NORMAL.value
    focus_mode: bool = False
    continuous_reading: bool = False
    gestures_enabled: bool = True
    dark_mode: bool = False
    help_seen: bool = False
    gesture_hint_seen: bool = False
    notifications_enabled: bool = False
    notification_hour: int = Field(default=9, ge=0, le=23)
    notification_minute: int = Field(default=0, ge=0, le=59)

    @property
    def language(self) -> Lang:
        return Lang.from_code(self.lang)

    @property
    def mode(self) -> ListMode:
        return ListMode.from_value(self.list_mode)

    @property
    def scale(self) -> TextScale:
        return TextScale.from_value(self.text_scale)
