"""
Tree and user models exchanged with the CMS
"""

from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

UNSPECIFIED_AR = "غير محدد"


class TreeStatus(str, Enum):
    """Tree condition as stored by the CMS"""
    GOOD = "good"
    NEEDS_ATTENTION = "needs attention"
    DEAD = "dead"


class City(str, Enum):
    """Planting cities, valued by their CMS enum names"""
    TRIPOLI = "Tripoli"
    ZAWIYA = "Zawiya"
    ZLITEN = "Zliten"
    SABHA = "Sabha"
    MISRATA = "Misrata"
    KHOMS = "Khoms"
    GHARYAN = "Gharyan"
    TARHUNA = "Tarhuna"


class TreeType(str, Enum):
    """Tree species, valued by their CMS enum names"""
    CYPRESS = "Cypress"
    PINE = "pine"
    CAMPHOR = "Camphor"
    FICUS = "Ficus"
    TECOMA = "Tecoma"
    CAROB = "Carob"


# Arabic form labels -> CMS values
CITY_LABELS_AR: Dict[str, City] = {
    "طرابلس": City.TRIPOLI,
    "الزاوية": City.ZAWIYA,
    "زليتن": City.ZLITEN,
    "سبها": City.SABHA,
    "مصراته": City.MISRATA,
    "الخمس": City.KHOMS,
    "غريان": City.GHARYAN,
    "ترهونة": City.TARHUNA,
}

TREE_TYPE_LABELS_AR: Dict[str, TreeType] = {
    "سرول": TreeType.CYPRESS,
    "صنوبر": TreeType.PINE,
    "كافور": TreeType.CAMPHOR,
    "فيكس": TreeType.FICUS,
    "تيكوما": TreeType.TECOMA,
    "خروب": TreeType.CAROB,
}

STATUS_DESCRIPTIONS_AR: Dict[str, str] = {
    "good": "الشجرة بحالة جيدة",
    "needs attention": "الشجرة بحاجة إلى عناية",
    "dead": "الشجرة ميتة",
}


def _parse_label(value: Any, labels: Dict[str, Enum]) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped in labels:
            return labels[stripped]
        return stripped
    return value


def translate_status(status: Optional[str]) -> str:
    """Arabic description of a tree status."""
    if not status:
        return UNSPECIFIED_AR
    return STATUS_DESCRIPTIONS_AR.get(status.lower(), status)


def translate_city(city: Optional[str]) -> str:
    """Arabic name of a CMS city value."""
    if not city:
        return UNSPECIFIED_AR
    for label, value in CITY_LABELS_AR.items():
        if value.value.lower() == city.lower():
            return label
    return city


def translate_tree_type(tree_type: Optional[str]) -> str:
    """Arabic name of a CMS tree type value."""
    if not tree_type:
        return UNSPECIFIED_AR
    for label, value in TREE_TYPE_LABELS_AR.items():
        if value.value.lower() == tree_type.lower():
            return label
    return tree_type


class User(BaseModel):
    """Authenticated CMS user"""
    id: int
    username: str
    email: str = ""
    confirmed: bool = False
    blocked: bool = False


class MediaFile(BaseModel):
    """Uploaded media file reference"""
    id: int
    url: str = ""
    name: str = ""
    mime: Optional[str] = None


class TreeRecord(BaseModel):
    """Tree entry as returned by the CMS"""
    id: int
    document_id: Optional[str] = Field(None, alias="documentId")
    serial_number: str
    location_name: Optional[str] = None
    google_map_location: Optional[str] = None
    planting_date: Optional[date] = None
    tree_status: Optional[str] = None
    notes: Optional[str] = None
    planted_by: Optional[str] = None
    city: Optional[str] = None
    tree_type: Optional[str] = None
    tree_photo: Optional[MediaFile] = None
    planter_photo: Optional[MediaFile] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")

    class Config:
        populate_by_name = True
        extra = "ignore"


class TreeEntry(BaseModel):
    """Validated data-entry form for a newly planted tree"""
    serial_number: str = Field(..., min_length=1)
    planting_date: date
    planted_by: str = Field(..., min_length=1)
    location_name: str = Field(..., min_length=1)
    google_map_location: str = Field(..., min_length=1)
    tree_status: TreeStatus
    city: City
    tree_type: TreeType
    notes: str = Field(..., min_length=1)
    tree_photo: Path
    planter_photo: Optional[Path] = None

    @field_validator("serial_number", "planted_by", "location_name", "google_map_location", "notes", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("city", mode="before")
    @classmethod
    def parse_city(cls, value: Any) -> Any:
        return _parse_label(value, CITY_LABELS_AR)

    @field_validator("tree_type", mode="before")
    @classmethod
    def parse_tree_type(cls, value: Any) -> Any:
        return _parse_label(value, TREE_TYPE_LABELS_AR)

    @field_validator("tree_photo", "planter_photo")
    @classmethod
    def photo_exists(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_file():
            raise ValueError(f"photo file not found: {value}")
        return value

    def to_cms_data(self) -> Dict[str, Any]:
        """Tree fields in the shape the CMS expects (photos excluded)."""
        return {
            "serial_number": self.serial_number,
            "planting_date": self.planting_date.isoformat(),
            "planted_by": self.planted_by,
            "location_name": self.location_name,
            "google_map_location": self.google_map_location,
            "tree_status": self.tree_status.value,
            "city": self.city.value,
            "tree_type": self.tree_type.value,
            "notes": self.notes,
        }
