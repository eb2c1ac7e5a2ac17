"""Catalog data models: skill entries, triggers, bundles, registry sources."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SkillTrigger(BaseModel):
    """What makes a catalog entry relevant to a project."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    packages: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    readme_keywords: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("readme_keywords", "readmeKeywords")
    )
    manual_only: bool = Field(
        default=False, validation_alias=AliasChoices("manual_only", "manualOnly")
    )

    @field_validator("packages", "files", "readme_keywords", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []


class CatalogEntry(BaseModel):
    """One installable skill. Immutable once fetched, identified by ``name``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    path: str = ""
    version: str = "1.0.0"
    description: str = ""
    triggers: SkillTrigger = Field(default_factory=SkillTrigger)
    dependencies: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    last_updated: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v):
        return str(v) if v not in (None, "") else "1.0.0"

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v):
        return v or ""

    @field_validator("triggers", mode="before")
    @classmethod
    def coerce_triggers(cls, v):
        return v or {}

    @field_validator("dependencies", "tags", mode="before")
    @classmethod
    def coerce_str_list(cls, v):
        return [str(item) for item in (v or [])]

    def summary(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "tags": list(self.tags),
            "dependencies": list(self.dependencies),
        }


class Bundle(BaseModel):
    """Curated named group of catalog entry names."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    description: str = ""
    skills: list[str] = Field(default_factory=list)
    use_cases: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("skills", "use_cases", "tags", mode="before")
    @classmethod
    def coerce_str_list(cls, v):
        return [str(item) for item in (v or [])]


class RegistrySource(BaseModel):
    """A catalog location. Lower ``priority`` wins when names collide."""

    url: str
    priority: int = 1
    auth: Optional[str] = None
