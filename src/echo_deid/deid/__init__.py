"""De-identification stages: pseudonyms, relative dates, numeric jitter."""

from .dates import DateAnonymizer, parse_visit_date
from .jitter import NumericJitter, jitter_value
from .pseudonymize import Pseudonymizer, assign_pseudonyms

__all__ = [
    "Pseudonymizer",
    "assign_pseudonyms",
    "DateAnonymizer",
    "parse_visit_date",
    "NumericJitter",
    "jitter_value",
]
