"""Output formatters for Socomo."""

from .base import BaseFormatter
from .html_formatter import Asset, HtmlFormatter
from .json_formatter import JsonFormatter
from .rich_formatter import RichFormatter

__all__ = ["Asset", "BaseFormatter", "HtmlFormatter", "JsonFormatter", "RichFormatter"]
