"""Asset categories and their fixed routing / indexing policy."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class AssetCategory(str, Enum):
    FRONTEND = "frontend"
    SYSTEM = "system"
    ROM = "rom"

    @property
    def policy(self) -> CategoryPolicy:
        return CATEGORY_POLICIES[self]


class CategoryPolicy(BaseModel):
    """Where a category is routed and which synthetic listings it offers."""
    model_config = ConfigDict(frozen=True)

    path_prefix: str
    indexed: bool = False
    has_subdir_index: bool = False


CATEGORY_POLICIES: dict[AssetCategory, CategoryPolicy] = {
    AssetCategory.FRONTEND: CategoryPolicy(path_prefix="/frontend/"),
    AssetCategory.SYSTEM: CategoryPolicy(path_prefix="/system/", indexed=True),
    AssetCategory.ROM: CategoryPolicy(path_prefix="/cores/", indexed=True, has_subdir_index=True),
}


class AssetMount(BaseModel):
    """One category bound either to a local directory or to the remote origin."""
    model_config = ConfigDict(frozen=True)

    category: AssetCategory
    local_root: Path | None = None

    @property
    def policy(self) -> CategoryPolicy:
        return self.category.policy

    @property
    def is_local(self) -> bool:
        return self.local_root is not None
