from .base import FeatureBuilder
from .captions import CaptionFeatureBuilder, build_vocabulary, clean_token, tokenize
from .tags import TagFeatureBuilder, normalize, parse_tag, parse_tags
from . import record_loader

__all__ = [
    "FeatureBuilder",
    "CaptionFeatureBuilder",
    "TagFeatureBuilder",
    "build_vocabulary",
    "clean_token",
    "tokenize",
    "normalize",
    "parse_tag",
    "parse_tags",
    "record_loader",
]
