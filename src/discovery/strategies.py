"""Field discovery strategies.

Each strategy is a pure function over a DomSnapshot that adds fields to an
ordered label -> DetectedField map. Strategies run in a fixed order and a
later strategy never replaces a label an earlier one produced; inside one
strategy the last field seen for a label wins.
"""

import re
from collections import OrderedDict
from typing import Dict, List, Optional, Set, Tuple

from loguru import logger

from src.browser.dom_snapshot import ContainerRecord, DomSnapshot, ElementRecord
from src.engine.config import (
    CUSTOM_WIDGET_MARKERS,
    HIDDEN_ALLOWED_INPUT_TYPES,
    LABEL_TYPE_KEYWORDS,
    QUESTION_CONTAINER_SELECTOR,
    REQUIRED_MARKER_PATTERNS,
)
from src.engine.models import DetectedField, FieldOption, FieldType, TimeSubInput


FieldMap = "OrderedDict[str, DetectedField]"

# Trailing counter on ids like "hobbies-checkbox-1"
ID_PREFIX_PATTERN = re.compile(r"^(?P<prefix>.+?)[-_]?\d+$")


# =============================================================================
# LABEL HELPERS
# =============================================================================

def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def strip_required_markers(label: str) -> str:
    """Remove '*' and '(Required)' decorations from a question label"""
    stripped = clean_text(label)
    for pattern in REQUIRED_MARKER_PATTERNS:
        stripped = re.sub(pattern, "", stripped, flags=re.IGNORECASE)
    return stripped.strip()


def refine_type_by_label(field_type: FieldType, label: str, allow_date: bool = False) -> FieldType:
    """
    Refine a text-like type from keywords in its label

    Args:
        field_type: Type inferred from the control itself
        label: Field label
        allow_date: Also map 'date' labels on plain text controls to FieldType.DATE

    Returns:
        Refined field type
    """
    lower = label.lower()
    for keywords, refined in LABEL_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            if field_type in (FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE) or allow_date:
                return refined
    if allow_date and "date" in lower and field_type == FieldType.TEXT:
        return FieldType.DATE
    return field_type


def humanize_identifier(identifier: str) -> str:
    """'state' -> 'State', 'favorite_color' -> 'Favorite Color'"""
    words = re.split(r"[-_\s]+", identifier.strip())
    return " ".join(w.capitalize() for w in words if w)


# =============================================================================
# STRATEGY 1: STRUCTURED QUESTION CONTAINERS
# =============================================================================

def container_selector(position: int) -> str:
    return f"{QUESTION_CONTAINER_SELECTOR}:nth-of-type({position})"


def classify_container(container: ContainerRecord, label: str) -> Optional[DetectedField]:
    """Turn one question container into a field, or None when it holds no control"""
    base = container_selector(container.position)
    options: Tuple[FieldOption, ...] = ()
    sub_inputs: Tuple[TimeSubInput, ...] = ()
    selector: Optional[str] = None

    if container.radios:
        field_type = FieldType.RADIO_GROUP
        options = tuple(
            FieldOption(id=r.id, value=r.value, label=r.value, selector=r.selector)
            for r in container.radios
        )
        selector = base
    elif container.checkboxes:
        field_type = FieldType.CHECKBOX_GROUP
        options = tuple(
            FieldOption(id=c.id, value=c.value, label=c.value, selector=c.selector)
            for c in container.checkboxes
        )
        selector = base
    elif container.has_hour and container.has_minute:
        field_type = FieldType.TIME_GROUP
        parts = [
            TimeSubInput(part="hour", selector=f'{base} input[aria-label="Hour" i]'),
            TimeSubInput(part="minute", selector=f'{base} input[aria-label="Minute" i]'),
        ]
        if container.has_listbox:
            parts.append(TimeSubInput(part="ampm", selector=f'{base} div[role="listbox"]'))
        sub_inputs = tuple(parts)
        selector = base
    elif container.has_listbox:
        field_type = FieldType.SELECT
        selector = f'{base} div[role="listbox"]'
    elif container.text_input_type is not None:
        if container.text_input_type == "date":
            field_type = FieldType.DATE
        elif container.text_input_type == "time":
            field_type = FieldType.TIME_GROUP
        else:
            field_type = FieldType.TEXT
        selector = f'{base} input:not([type="hidden"])'
    elif container.has_textarea:
        field_type = FieldType.TEXTAREA
        selector = f"{base} textarea"
    elif container.has_contenteditable:
        field_type = FieldType.TEXT
        selector = f'{base} [contenteditable="true"]'
    else:
        return None

    field_type = refine_type_by_label(field_type, label, allow_date=field_type == FieldType.TEXT)

    return DetectedField(
        label=label,
        type=field_type,
        required=container.required,
        selector=selector,
        options=options,
        sub_inputs=sub_inputs,
    )


def structured_container_strategy(snapshot: DomSnapshot, fields: FieldMap) -> None:
    for container in snapshot.containers:
        label = strip_required_markers(container.heading)
        if not label:
            continue
        field = classify_container(container, label)
        if field is None:
            continue
        # last-seen wins inside the strategy
        fields[label] = field


# =============================================================================
# STRATEGY 2: NATIVE RADIO / CHECKBOX GROUPS
# =============================================================================

def group_key_for(element: ElementRecord, prefix_counts: Dict[str, int]) -> Optional[str]:
    """
    Group key for a native radio/checkbox input

    Named inputs group by name. Nameless inputs whose id shares a structural
    prefix with another input (``hobbies-checkbox-1``) group under
    ``<prefix>-group``; a remaining nameless input with an id is its own group.
    """
    if element.name:
        return element.name
    if not element.id:
        return None
    match = ID_PREFIX_PATTERN.match(element.id)
    if match and prefix_counts.get(match.group("prefix"), 0) > 1:
        return f"{match.group('prefix')}-group"
    return element.id


def resolve_group_label(first: ElementRecord, group_key: str) -> str:
    for candidate in (first.fieldset_legend, first.layout_label, first.preceding_label):
        label = clean_text(candidate)
        if label:
            return label
    return group_key


def build_option(element: ElementRecord) -> FieldOption:
    label = element.value
    selector = element.selector
    if element.label_for is not None:
        label = clean_text(element.label_for.text) or label
        # the input is often visually hidden; its label is the real click target
        selector = element.label_for.selector
    if (not label or label == "on") and element.parent_label:
        label = clean_text(element.parent_label)
    return FieldOption(id=element.id, value=element.value, label=label, selector=selector)


def native_group_strategy(snapshot: DomSnapshot, fields: FieldMap) -> Set[str]:
    """
    Group native radio/checkbox inputs into single fields

    Returns:
        Selectors of every input claimed by a group
    """
    candidates = [
        e for e in snapshot.elements
        if e.tag == "input" and e.input_type in ("radio", "checkbox") and not e.in_container
    ]

    prefix_counts: Dict[str, int] = {}
    for element in candidates:
        if not element.name and element.id:
            match = ID_PREFIX_PATTERN.match(element.id)
            if match:
                prefix = match.group("prefix")
                prefix_counts[prefix] = prefix_counts.get(prefix, 0) + 1

    groups: "OrderedDict[str, List[ElementRecord]]" = OrderedDict()
    for element in candidates:
        key = group_key_for(element, prefix_counts)
        if key:
            groups.setdefault(key, []).append(element)

    claimed: Set[str] = set()
    produced: Dict[str, DetectedField] = OrderedDict()
    for key, inputs in groups.items():
        first = inputs[0]
        label = resolve_group_label(first, key)
        field_type = FieldType.RADIO_GROUP if first.input_type == "radio" else FieldType.CHECKBOX_GROUP
        produced[label] = DetectedField(
            label=label,
            type=field_type,
            required=any(i.required for i in inputs),
            selector=first.parent_selector or first.selector,
            options=tuple(build_option(i) for i in inputs),
            name=key,
            disabled=all(i.disabled for i in inputs),
        )
        claimed.update(i.selector for i in inputs)

    for label, field in produced.items():
        if label not in fields:
            fields[label] = field
        else:
            logger.debug(f"Native group '{label}' already detected by an earlier strategy")
    return claimed


# =============================================================================
# STRATEGY 3: GENERIC SCAN
# =============================================================================

def match_custom_widget(element: ElementRecord) -> Optional[FieldType]:
    """First matching entry of CUSTOM_WIDGET_MARKERS, if any"""
    for marker in CUSTOM_WIDGET_MARKERS:
        if element.id and element.id in marker["ids"]:
            return marker["type"]
        if any(c in element.classes for c in marker["classes"]):
            return marker["type"]
        if element.id and any(part in element.id for part in marker["id_contains"]):
            return marker["type"]
        if marker["inside"] == "react-datepicker-wrapper" and element.in_datepicker_wrapper:
            return marker["type"]
    return None


def resolve_element_label(element: ElementRecord, widget_type: Optional[FieldType]) -> str:
    if element.label_for is not None and clean_text(element.label_for.text):
        return clean_text(element.label_for.text)
    if widget_type == FieldType.REACT_SELECT and element.widget_container is not None:
        container = element.widget_container
        if clean_text(container.aria_label):
            return clean_text(container.aria_label)
        if container.id:
            return humanize_identifier(container.id)
    if clean_text(element.layout_label):
        return clean_text(element.layout_label)
    return clean_text(element.placeholder)


def base_type_for(element: ElementRecord) -> FieldType:
    if element.tag == "select" or element.role == "listbox":
        return FieldType.SELECT
    if element.tag == "textarea":
        return FieldType.TEXTAREA
    return {
        "file": FieldType.FILE,
        "date": FieldType.DATE,
        "time": FieldType.TIME_GROUP,
        "email": FieldType.EMAIL,
        "tel": FieldType.PHONE,
    }.get(element.input_type, FieldType.TEXT)


def generic_scan_strategy(snapshot: DomSnapshot, fields: FieldMap, claimed: Set[str]) -> None:
    earlier = set(fields)
    for element in snapshot.elements:
        if element.in_container or element.selector in claimed:
            continue
        if element.tag == "input" and element.input_type in ("radio", "checkbox"):
            # ungroupable choice inputs (no name, no id) carry no addressable label
            continue

        widget_type = match_custom_widget(element)
        if element.input_type == "hidden" and widget_type != FieldType.REACT_SELECT:
            continue
        if not element.visible and widget_type is None and element.input_type not in HIDDEN_ALLOWED_INPUT_TYPES:
            continue

        raw_label = resolve_element_label(element, widget_type)
        if not raw_label:
            continue
        label = strip_required_markers(raw_label)
        if not label or label in earlier:
            continue

        field_type = widget_type or base_type_for(element)
        if field_type == FieldType.TEXT:
            field_type = refine_type_by_label(field_type, label)

        selector = element.selector
        if widget_type == FieldType.REACT_SELECT and element.widget_container is not None:
            # the container, not the hidden input, receives the open/close click
            selector = element.widget_container.selector

        options: Tuple[FieldOption, ...] = ()
        if element.tag == "select":
            options = tuple(
                FieldOption(
                    value=o.value,
                    label=o.text,
                    selector=f"{element.selector} > option:nth-of-type({i + 1})",
                )
                for i, o in enumerate(element.options)
            )

        # last-seen wins inside the strategy
        fields[label] = DetectedField(
            label=label,
            type=field_type,
            required=element.required or "*" in raw_label,
            selector=selector,
            options=options,
            input_locator=element.selector,
            name=element.name,
            disabled=element.disabled,
            readonly=element.readonly,
        )


# =============================================================================
# PIPELINE
# =============================================================================

def discover_fields(snapshot: DomSnapshot) -> List[DetectedField]:
    """
    Run every strategy in order over one snapshot

    Args:
        snapshot: Structured page snapshot

    Returns:
        Deduplicated fields in detection order. A field whose selector is
        already owned by an earlier field is dropped.
    """
    fields: "OrderedDict[str, DetectedField]" = OrderedDict()
    structured_container_strategy(snapshot, fields)
    claimed = native_group_strategy(snapshot, fields)
    generic_scan_strategy(snapshot, fields, claimed)

    unique: List[DetectedField] = []
    seen: Set[str] = set()
    for field in fields.values():
        if field.field_key in seen:
            logger.warning(f"Dropping '{field.label}': selector {field.selector} already used by another field")
            continue
        seen.add(field.field_key)
        unique.append(field)
    return unique
