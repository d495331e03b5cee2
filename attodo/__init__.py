"""Natural-language due dates for attodo task titles."""

from attodo.date_parser import DateParser, ParseResult, parse

__all__ = ["DateParser", "ParseResult", "parse"]
