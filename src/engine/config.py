"""Engine configuration and ordered lookup tables.

Tables in this module drive control flow elsewhere (fill order, submit
detection, success detection, widget recognition, mapper keywords). Adding a
new widget family or submit pattern should only require a table entry.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from src.engine.models import FieldType


# =============================================================================
# FILL ORDER
# =============================================================================

# Lower fills first. Text-like fields go before anything that opens an overlay
# so a later widget's open menu cannot cover an earlier field.
TYPE_PRIORITY: Dict[FieldType, int] = {
    FieldType.TEXT: 1,
    FieldType.EMAIL: 1,
    FieldType.PHONE: 1,
    FieldType.TEXTAREA: 1,
    FieldType.RADIO_GROUP: 2,
    FieldType.CHECKBOX_GROUP: 3,
    FieldType.SELECT: 4,
    FieldType.DATE: 5,
    FieldType.DATE_PICKER: 5,
    FieldType.TIME_GROUP: 5,
    FieldType.REACT_SELECT: 6,
    FieldType.AUTOCOMPLETE: 6,
    FieldType.FILE: 7,
}

UNKNOWN_TYPE_PRIORITY = 10

# Types filled even when their selector is not visible (hidden inputs behind labels, widget internals)
VISIBILITY_EXEMPT_TYPES = frozenset({
    FieldType.FILE,
    FieldType.RADIO_GROUP,
    FieldType.CHECKBOX_GROUP,
    FieldType.AUTOCOMPLETE,
    FieldType.DATE_PICKER,
    FieldType.REACT_SELECT,
})


# =============================================================================
# DISCOVERY
# =============================================================================

# Any of these present means the form has rendered enough to inspect
FORM_READY_SELECTOR = (
    'input:not([type="hidden"]), textarea, select, [role="checkbox"], [role="radio"], '
    '[role="listbox"], [role="combobox"]'
)

# Uniform per-question wrapper used by structured survey pages
QUESTION_CONTAINER_SELECTOR = 'div[role="listitem"]'

# Two-column layouts put the label in the sibling preceding these wrappers
LAYOUT_WRAPPER_SELECTOR = ".col-md-9, .col-sm-12"

REQUIRED_MARKER_PATTERNS: List[str] = [
    r"^[\*\s]+",
    r"[\*\s]+$",
    r"\s*\(Required\)$",
]

LABEL_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], FieldType]] = [
    (("email",), FieldType.EMAIL),
    (("phone", "mobile"), FieldType.PHONE),
]

# Ordered custom widget markers: the first rule that matches wins
CUSTOM_WIDGET_MARKERS: List[Dict[str, Any]] = [
    {
        "type": FieldType.AUTOCOMPLETE,
        "ids": ["subjectsInput"],
        "classes": ["react-select__input"],
        "id_contains": [],
        "inside": None,
    },
    {
        "type": FieldType.DATE_PICKER,
        "ids": ["dateOfBirthInput"],
        "classes": [],
        "id_contains": [],
        "inside": "react-datepicker-wrapper",
    },
    {
        "type": FieldType.REACT_SELECT,
        "ids": [],
        "classes": [],
        "id_contains": ["react-select"],
        "inside": None,
    },
]

# Types whose element may be visually hidden and still be a valid target
HIDDEN_ALLOWED_INPUT_TYPES = frozenset({"file", "radio", "checkbox"})


# =============================================================================
# INTERACTION
# =============================================================================

REACT_SELECT_MENU_SELECTOR = 'div[class*="-menu"], div[role="listbox"]'
REACT_SELECT_OPTION_SELECTOR = 'div[class*="-option"]'
LISTBOX_OPTION_SELECTOR = 'div[role="option"]'
AUTOCOMPLETE_TOKEN_SELECTOR = 'div[class*="multi-value__label"]'
AMPM_OPTION_SELECTOR = 'div[role="option"], .quantumWizMenuPapermsfMenuOption, [role="listbox"] div'

DATEPICKER_OVERLAY_SELECTOR = ".react-datepicker"
DATEPICKER_WRAPPER_SELECTOR = ".react-datepicker-wrapper"
DATEPICKER_MONTH_SELECT = ".react-datepicker__month-select"
DATEPICKER_YEAR_SELECT = ".react-datepicker__year-select"
DATEPICKER_DAY_TEMPLATE = '.react-datepicker__day:not(.react-datepicker__day--outside-month):text-is("{day}")'
DATEPICKER_DAY_FALLBACK_TEMPLATE = 'div[role="option"]:has-text("{day}")'

# Offset used for the forced retry click on choice options
RETRY_CLICK_POSITION = {"x": 5, "y": 5}

# Click target used to pull focus out of focus-stealing widgets
FOCUS_RESET_SELECTOR = "body"
FOCUS_RESET_POSITION = {"x": 1, "y": 1}

EMAIL_PATTERN = r"\S+@\S+\.\S+"
MIN_PHONE_DIGITS = 10


# =============================================================================
# SUBMISSION
# =============================================================================

SUBMIT_SELECTORS: List[str] = [
    'div[role="button"]:has-text("Submit")',
    'button:has-text("Submit")',
    'input[type="submit"]',
    'a.btn:has-text("Submit"), .btn-primary:has-text("Submit")',
    'button[type="submit"]',
]

# Full-DOM scan fallback, in this order, matching visible text containing the keyword
SUBMIT_SCAN_SELECTORS: List[str] = [
    'div[role="button"]',
    'button',
    'input[type="button"]',
    'input[type="submit"]',
    '[aria-label*="Submit"]',
    'span',
]

SUBMIT_KEYWORD = "submit"

SUCCESS_INDICATORS: List[str] = [
    "your response has been recorded",
    "response recorded",
    "thank you",
    "thanks for submitting",
    "successfully",
    "submitted",
    "submission received",
]

SUCCESS_URL_MARKERS: List[str] = ["formResponse", "submitted", "success", "thank"]

FAILURE_INDICATORS: List[str] = [
    "this is a required question",
    "required field",
    "please fill out this field",
    "invalid",
    "something went wrong",
]


# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================

class RequiredFieldPolicy(str, Enum):
    """What to do when a required field was attempted without error but could not be verified"""
    LENIENT = "lenient"  # warn and keep going
    STRICT = "strict"  # fail the job


class FillConfig(BaseModel):
    """Timeouts, delays and policies for one fill run"""
    required_field_policy: RequiredFieldPolicy = RequiredFieldPolicy.LENIENT
    headless: bool = False
    navigation_timeout_ms: int = Field(default=60000, gt=0)
    navigation_attempts: int = Field(default=2, ge=1)
    post_load_settle_ms: int = Field(default=2000, ge=0)
    form_ready_timeout_ms: int = Field(default=15000, gt=0)
    inspect_settle_ms: int = Field(default=1000, ge=0)
    settle_ms: int = Field(default=300, ge=0)
    menu_timeout_ms: int = Field(default=3000, gt=0)
    datepicker_timeout_ms: int = Field(default=2000, gt=0)
    suggestion_wait_ms: int = Field(default=500, ge=0)
    typing_delay_ms: int = Field(default=100, ge=0)
    time_typing_delay_ms: int = Field(default=150, ge=0)
    confirmation_timeout_ms: int = Field(default=10000, gt=0)
    teardown_grace_seconds: float = Field(default=5.0, ge=0)

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        **overrides: Any
    ) -> "FillConfig":
        """
        Build configuration from YAML, environment and explicit overrides

        Precedence, lowest first: model defaults, the ``formfill`` section of
        the YAML file, ``FORMFILL_*`` environment variables, keyword overrides.

        Args:
            config_path: YAML file path (defaults to FORMFILL_CONFIG or config/config.yaml)
            **overrides: Field values that win over every other source

        Returns:
            Validated FillConfig
        """
        load_dotenv()
        values: Dict[str, Any] = {}

        path = config_path or os.getenv("FORMFILL_CONFIG", "config/config.yaml")
        if path and os.path.exists(path):
            try:
                with open(path, "r") as f:
                    raw = yaml.safe_load(f) or {}
                section = raw.get("formfill", {}) or {}
                values.update({k: v for k, v in section.items() if k in cls.model_fields})
                logger.debug(f"Loaded fill config from {path}")
            except yaml.YAMLError as e:
                logger.error(f"Error parsing config file {path}: {e}")

        for name in cls.model_fields:
            env_value = os.getenv(f"FORMFILL_{name.upper()}")
            if env_value is not None:
                values[name] = env_value

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
