from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


class PanelItem(BaseModel):
    id: str

    class Config:
        extra = "allow"


class ProgramCard(PanelItem):
    time: str = ""
    title: str = ""
    description: str = ""
    icon: str = "Clock"


class InfoCard(PanelItem):
    icon: str = "Info"
    title: str = ""
    description: str = ""


class TransportCard(PanelItem):
    icon: str = "Train"
    title: str = ""
    description: str = ""


class BottomButton(PanelItem):
    text: str = ""
    link: str = "/"
    link_type: Literal["internal", "external"] = "internal"
    variant: str = "outline"
    size: str = "default"
    font_size: str = "text-sm"


class DownloadFile(PanelItem):
    name: str = ""
    url: str = ""


class RegistrationField(PanelItem):
    label: str
    placeholder: str = ""
    type: str = "text"
    required: bool = False
    options: Optional[List[str]] = None
    icon: Optional[str] = None


PANEL_ITEM_TYPES = {
    "program_cards": ProgramCard,
    "info_cards": InfoCard,
    "transport_cards": TransportCard,
    "bottom_buttons": BottomButton,
    "location_buttons": BottomButton,
    "download_files": DownloadFile,
    "form_fields": RegistrationField,
}


class ItemCreate(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
    index: Optional[int] = None  # append when omitted


class ItemUpdate(BaseModel):
    fields: Dict[str, Any]


class ReorderRequest(BaseModel):
    source_index: int
    target_index: int


class DragEndRequest(BaseModel):
    active_id: str
    over_id: Optional[str] = None


class PanelReplace(BaseModel):
    items: List[Dict[str, Any]]


class PanelResponse(BaseModel):
    panel: str
    key: str
    items: List[Dict[str, Any]]
