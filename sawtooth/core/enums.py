"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Product status values used in both models and schemas"""
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class ProductCategory(str, Enum):
    SHOES = "shoes"
    CLOTHES = "clothes"
    FURNITURE = "furniture"


class ClothingSubcategory(str, Enum):
    MENS = "mens"
    WOMENS = "womens"


class OpportunityCategory(str, Enum):
    """AI sourcing only proposes clothes and shoes"""
    CLOTHES = "clothes"
    SHOES = "shoes"


AI_DRAFT_TAG = "ai-draft"
DEFAULT_CATEGORY = ProductCategory.CLOTHES.value
