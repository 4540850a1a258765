"""Structured DOM snapshot used by field discovery.

The snapshot script runs once inside the page and returns plain data: every
question container and every candidate control, with label candidates,
visibility and generated selectors already resolved. Discovery strategies
then work on these records without touching the live document, which keeps
them testable without a browser.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ChoiceRecord(BaseModel):
    """A role=radio / role=checkbox element inside a question container"""
    id: Optional[str] = None
    value: str = ""
    selector: str = ""


class ContainerRecord(BaseModel):
    """One div[role=listitem] question wrapper"""
    position: int  # 1-based nth-of-type among its siblings
    heading: str = ""
    required: bool = False
    radios: List[ChoiceRecord] = Field(default_factory=list)
    checkboxes: List[ChoiceRecord] = Field(default_factory=list)
    has_listbox: bool = False
    text_input_type: Optional[str] = None
    has_textarea: bool = False
    has_contenteditable: bool = False
    has_hour: bool = False
    has_minute: bool = False


class LabelRef(BaseModel):
    text: str = ""
    selector: str = ""


class SelectOptionRecord(BaseModel):
    value: str = ""
    text: str = ""


class WidgetContainer(BaseModel):
    """Clickable wrapper of a searchable-select widget"""
    selector: str
    id: Optional[str] = None
    aria_label: Optional[str] = None


class ElementRecord(BaseModel):
    """One candidate control outside of question containers (or inside, flagged)"""
    tag: str
    input_type: str = ""
    role: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    value: str = ""
    placeholder: str = ""
    classes: List[str] = Field(default_factory=list)
    required: bool = False
    disabled: bool = False
    readonly: bool = False
    visible: bool = True
    in_container: bool = False
    selector: str
    parent_selector: Optional[str] = None
    label_for: Optional[LabelRef] = None
    parent_label: Optional[str] = None
    fieldset_legend: Optional[str] = None
    layout_label: Optional[str] = None
    preceding_label: Optional[str] = None
    widget_container: Optional[WidgetContainer] = None
    in_datepicker_wrapper: bool = False
    options: List[SelectOptionRecord] = Field(default_factory=list)


class DomSnapshot(BaseModel):
    """Everything discovery needs from one loaded page"""
    url: str = ""
    containers: List[ContainerRecord] = Field(default_factory=list)
    elements: List[ElementRecord] = Field(default_factory=list)


SNAPSHOT_SCRIPT = r"""
(config) => {
    const clean = (el) => el ? (el.innerText || el.textContent || '').trim().replace(/\s+/g, ' ') : '';

    const isVisible = (el) => {
        const style = window.getComputedStyle(el);
        return style.display !== 'none' && style.visibility !== 'hidden' && el.offsetParent !== null;
    };

    const generateSelector = (el) => {
        if (el.id) return `#${CSS.escape(el.id)}`;
        if (el.getAttribute('name')) return `${el.tagName.toLowerCase()}[name="${el.getAttribute('name')}"]`;
        const path = [];
        let current = el;
        while (current && current !== document.body) {
            let part = current.tagName.toLowerCase();
            if (current.className && typeof current.className === 'string' && current.className.trim()) {
                const cls = current.className.trim().split(/\s+/)[0];
                // styled-component hashes change between builds
                if (!cls.includes('css-')) part += '.' + CSS.escape(cls);
            }
            const parent = current.parentElement;
            if (parent) {
                const same = Array.from(parent.children).filter(c => c.tagName === current.tagName);
                if (same.length > 1) part += `:nth-of-type(${same.indexOf(current) + 1})`;
            }
            path.unshift(part);
            current = current.parentElement;
        }
        // shortest suffix (at least 4 segments) that matches only this element
        for (let n = Math.min(4, path.length); n <= path.length; n++) {
            const candidate = path.slice(-n).join(' > ');
            if (document.querySelectorAll(candidate).length === 1) return candidate;
        }
        return 'body > ' + path.join(' > ');
    };

    const labelFor = (el) => {
        if (!el.id) return null;
        const l = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
        return l ? { text: clean(l), selector: `label[for="${el.id}"]` } : null;
    };

    const containers = Array.from(document.querySelectorAll(config.containerSelector)).map((q) => {
        const parent = q.parentElement;
        const siblings = parent ? Array.from(parent.children).filter(c => c.tagName === q.tagName) : [q];
        const choice = (el) => ({
            id: el.id || null,
            value: el.getAttribute('data-value') || el.getAttribute('aria-label') || clean(el),
            selector: generateSelector(el)
        });
        const textInput = q.querySelector('input:not([type="hidden"])');
        return {
            position: siblings.indexOf(q) + 1,
            heading: clean(q.querySelector('div[role="heading"]')),
            required: !!q.querySelector('span[aria-label*="Required"], [aria-required="true"]'),
            radios: Array.from(q.querySelectorAll('div[role="radio"]')).map(choice),
            checkboxes: Array.from(q.querySelectorAll('div[role="checkbox"]')).map(choice),
            has_listbox: !!q.querySelector('div[role="listbox"]'),
            text_input_type: textInput ? (textInput.getAttribute('type') || 'text').toLowerCase() : null,
            has_textarea: !!q.querySelector('textarea'),
            has_contenteditable: !!q.querySelector('[contenteditable="true"]'),
            has_hour: !!q.querySelector('input[aria-label="Hour" i]'),
            has_minute: !!q.querySelector('input[aria-label="Minute" i]')
        };
    });

    const elements = Array.from(document.querySelectorAll('input, textarea, select, div[role="listbox"]')).map((el) => {
        const tag = el.tagName.toLowerCase();
        const layout = el.closest(config.layoutWrapperSelector);
        const fieldset = el.closest('fieldset');
        const legend = fieldset ? fieldset.querySelector('legend') : null;
        const groupParent = el.parentElement ? el.parentElement.parentElement : null;
        const preceding = groupParent ? groupParent.previousElementSibling : null;
        let widget = null;
        if (el.id && el.id.includes('react-select')) {
            const box = el.closest('div[class*="-container"]') || el.parentElement;
            if (box) widget = { selector: generateSelector(box), id: box.id || null, aria_label: box.getAttribute('aria-label') };
        }
        return {
            tag,
            input_type: tag === 'input' ? (el.getAttribute('type') || 'text').toLowerCase() : '',
            role: el.getAttribute('role'),
            id: el.id || null,
            name: el.getAttribute('name'),
            value: tag === 'div' ? '' : (el.value || ''),
            placeholder: el.getAttribute('placeholder') || '',
            classes: Array.from(el.classList),
            required: !!el.required || el.getAttribute('aria-required') === 'true',
            disabled: !!el.disabled || el.getAttribute('aria-disabled') === 'true',
            readonly: !!el.readOnly,
            visible: isVisible(el),
            in_container: !!el.closest(config.containerSelector),
            selector: generateSelector(el),
            parent_selector: el.parentElement ? generateSelector(el.parentElement) : null,
            label_for: labelFor(el),
            parent_label: el.parentElement && el.parentElement.tagName === 'LABEL' ? clean(el.parentElement) : null,
            fieldset_legend: legend ? clean(legend) : null,
            layout_label: layout && layout.previousElementSibling ? clean(layout.previousElementSibling) : null,
            preceding_label: preceding && preceding.tagName === 'LABEL' ? clean(preceding) : null,
            widget_container: widget,
            in_datepicker_wrapper: !!el.closest('.react-datepicker-wrapper'),
            options: tag === 'select' ? Array.from(el.options).map(o => ({ value: o.value, text: o.text.trim() })) : []
        };
    });

    return { url: window.location.href, containers, elements };
}
"""
