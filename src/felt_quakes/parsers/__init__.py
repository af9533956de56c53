"""Parsers for converting raw BMKG feed data to Earthquake."""

from felt_quakes.parsers.bmkg_felt import BMKGFeltParser
from felt_quakes.parsers.legacy_text import BMKGLegacyTableParser

PARSER_MAP = {
    "bmkg_felt": BMKGFeltParser(),
    # Rows scraped from the pre-JSON HTML table, for backfills
    "bmkg_felt_legacy": BMKGLegacyTableParser(),
}

__all__ = ["PARSER_MAP", "BMKGFeltParser", "BMKGLegacyTableParser"]
