"""Browser configuration string parsing and caching."""

from chrome_provider.configuration.cache import ConfigCache
from chrome_provider.configuration.parser import parse_config
from chrome_provider.configuration.tokenizer import find_argument_tail, split_escaped, unescape

__all__ = [
    "ConfigCache",
    "find_argument_tail",
    "parse_config",
    "split_escaped",
    "unescape",
]
