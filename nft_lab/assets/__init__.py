"""Asset classification: uploads and archives to layers."""

from .classifier import (
    AssetClassifier,
    IMAGE_EXTENSIONS,
    UploadedFile,
    classify_archive,
    classify_directory,
    classify_files,
    is_image_path,
)
from .rules import DEFAULT_RULES, LayerRule, format_layer_name, keyword_rule, match_rules

__all__ = [
    "AssetClassifier",
    "DEFAULT_RULES",
    "IMAGE_EXTENSIONS",
    "LayerRule",
    "UploadedFile",
    "classify_archive",
    "classify_directory",
    "classify_files",
    "format_layer_name",
    "is_image_path",
    "keyword_rule",
    "match_rules",
]
