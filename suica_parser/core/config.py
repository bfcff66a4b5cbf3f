"""
Layout template loading.
"""
import yaml
from pathlib import Path
from typing import List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = Path(__file__).parent.parent / "templates" / "suica_statement.yaml"


class ColumnDefinition(BaseModel):
    """A logical column and the header keywords that anchor it."""
    model_config = ConfigDict(frozen=True)

    name: str
    keywords: List[str]

    def matches(self, normalized_token: str) -> bool:
        return any(keyword in normalized_token for keyword in self.keywords)

    def __str__(self):
        return self.name


class RegionSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    margin: float = 32.0
    footer_padding: float = 40.0
    header_lookback: float = 5.0
    first_page_offset: float = 160.0
    next_page_offset: float = 130.0


class LineSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    y_tolerance: float = 1.5
    min_token_width: float = 0.5


class ColumnSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    padding: float = 2.0
    boundary_tolerance: float = 0.5
    full_history: List[ColumnDefinition]
    partial_selection: List[ColumnDefinition]


class LayoutConfig(BaseModel):
    """Tuned constants and column definitions for one statement template."""
    model_config = ConfigDict(frozen=True)

    template_id: str
    description: str = ""
    region: RegionSettings = Field(default_factory=RegionSettings)
    lines: LineSettings = Field(default_factory=LineSettings)
    columns: ColumnSettings
    entry_only_types: List[str] = Field(default_factory=list)
    exit_markers: List[str] = Field(default_factory=list)


def load_layout_config(path: Optional[Path] = None) -> LayoutConfig:
    """
    Load a layout template from YAML.

    Args:
        path: Template file, defaults to the bundled Suica template

    Returns:
        Validated LayoutConfig

    Raises:
        ValueError: when the file is missing or has no template id
    """
    template_path = Path(path) if path else DEFAULT_TEMPLATE
    if not template_path.exists():
        raise ValueError(f"Template not found: {template_path}")

    with open(template_path, 'r', encoding='utf-8') as f:
        template_data = yaml.safe_load(f) or {}

    if not template_data.get('template_id'):
        raise ValueError(f"Template has no 'template_id': {template_path}")

    config = LayoutConfig.model_validate(template_data)
    logger.debug(f"Loaded template: {config.template_id}")
    return config
