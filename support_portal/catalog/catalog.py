"""
Form catalog: integration/form/param models, cached loading, and the
text rendering the assistant matches requests against.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from support_portal.config import CATALOG_PATH
from support_portal.llm.errors import CatalogLoadError

logger = logging.getLogger(__name__)


class ParamOption(BaseModel):
    """Labelled option value."""
    value: Union[str, int, float, bool]
    label: Optional[str] = None


class Param(BaseModel):
    """One named query parameter of a form."""
    name: str = Field(..., min_length=1)
    type: str = "string"
    description: str = ""
    required: bool = False
    options: Optional[List[Union[ParamOption, str, int, float, bool]]] = None

    def option_labels(self) -> List[str]:
        """Display text for each option, falling back to the raw value."""
        labels = []
        for option in self.options or []:
            if isinstance(option, ParamOption):
                labels.append(option.label if option.label else str(option.value))
            else:
                labels.append(str(option))
        return labels


class Form(BaseModel):
    """One submittable request type within an integration."""
    path: str
    description: str
    keywords: Optional[List[str]] = None
    params: List[Param] = Field(default_factory=list)

    @field_validator("path")
    @classmethod
    def path_is_rooted(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("form path must begin with '/'")
        return value

    @model_validator(mode="after")
    def param_names_unique(self) -> "Form":
        names = [param.name for param in self.params]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate param names in {self.path}: {', '.join(duplicates)}")
        return self

    @property
    def required_params(self) -> List[Param]:
        return [param for param in self.params if param.required]


class Integration(BaseModel):
    """One backend ticketing system and its forms."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    base_url: str = Field(..., alias="baseURL")
    forms: List[Form] = Field(default_factory=list)

    def form_url(self, form: Form) -> str:
        """Full link for a form, with exactly one slash at the seam."""
        return self.base_url.rstrip("/") + form.path


_INTEGRATIONS = TypeAdapter(List[Integration])


class Catalog(BaseModel):
    """The complete, ordered set of integrations."""
    integrations: List[Integration]

    @classmethod
    def from_document(cls, data: Any) -> "Catalog":
        return cls(integrations=_INTEGRATIONS.validate_python(data))

    def forms(self) -> List[Tuple[Integration, Form]]:
        return [(integration, form) for integration in self.integrations for form in integration.forms]

    def find_form(self, url: str) -> Optional[Tuple[Integration, Form]]:
        """Resolve a (possibly parameterized) link back to its form."""
        parts = urlsplit(url)
        bare = f"{parts.scheme}://{parts.netloc}{parts.path}" if parts.scheme else parts.path
        bare = bare.rstrip("/")
        for integration, form in self.forms():
            if integration.form_url(form).rstrip("/") == bare:
                return integration, form
        return None


def describe(catalog: Catalog) -> str:
    """Render the catalog as the text block the assistant matches against.

    Output is deterministic and its layout is stable: every integration,
    then each form's full URL, description, keywords and params in
    document order.
    """
    lines = []
    for integration in catalog.integrations:
        lines.append(f"Integration: {integration.name}")
        lines.append(f"Description: {integration.description}")
        for form in integration.forms:
            lines.append(f"  Form URL: {integration.form_url(form)}")
            lines.append(f"  Form Description: {form.description}")
            if form.keywords:
                lines.append(f"  Keywords: {', '.join(form.keywords)}")
            if form.params:
                lines.append("  Parameters:")
            for param in form.params:
                marker = " [Required]" if param.required else ""
                lines.append(f"    - {param.name} ({param.type}){marker}: {param.description}")
                if param.options:
                    lines.append(f"      Options: {', '.join(param.option_labels())}")
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


class CatalogCache:
    """Loads the catalog document once and serves it for the process lifetime.

    The first successful load wins. Concurrent cold starts serialize on a
    lock so the document is read at most once; failed loads are not
    cached, so the next caller retries.
    """

    def __init__(self, path: Path = CATALOG_PATH):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._catalog: Optional[Catalog] = None
        self._document: Any = None

    @property
    def loaded(self) -> bool:
        return self._catalog is not None

    def load(self) -> Catalog:
        """Return the cached catalog, reading it on first use."""
        catalog = self._catalog
        if catalog is not None:
            return catalog
        with self._lock:
            if self._catalog is None:
                self._document, self._catalog = self._read()
            return self._catalog

    def document(self) -> Any:
        """Raw catalog document as it was read from disk."""
        self.load()
        return self._document

    def reload(self) -> Catalog:
        """Force a fresh read, replacing the cache only on success."""
        with self._lock:
            self._document, self._catalog = self._read()
            return self._catalog

    def _read(self) -> Tuple[Any, Catalog]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
            catalog = Catalog.from_document(document)
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to load form catalog from %s: %s", self.path, e)
            raise CatalogLoadError(f"Failed to load form catalog from {self.path}") from e
        logger.info(
            "Loaded form catalog: %d integrations, %d forms",
            len(catalog.integrations),
            len(catalog.forms()),
        )
        return document, catalog


catalog_cache = CatalogCache()
