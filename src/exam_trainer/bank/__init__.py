from .csv_codec import parse_questions, to_csv, tokenize
from .loader import (
    BankFormatError,
    BankSource,
    BankUploadError,
    LoadedBank,
    domain_counts,
    filter_by_domains,
    find_duplicate_ids,
    load_default_bank,
    load_upload,
    parse_structured,
)
from .models import ALLOWED_DOMAINS, STARTER_QUESTIONS, ItemType, Question

__all__ = [
    "ALLOWED_DOMAINS",
    "STARTER_QUESTIONS",
    "ItemType",
    "Question",
    "tokenize",
    "parse_questions",
    "to_csv",
    "BankFormatError",
    "BankSource",
    "BankUploadError",
    "LoadedBank",
    "domain_counts",
    "filter_by_domains",
    "find_duplicate_ids",
    "load_default_bank",
    "load_upload",
    "parse_structured",
]
