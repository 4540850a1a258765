"""Unit tests for per-type fill/verify protocols and the interaction executor"""

import os
import pytest
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from src.browser.page_capability import id_selector
from src.engine.config import (
    AMPM_OPTION_SELECTOR,
    AUTOCOMPLETE_TOKEN_SELECTOR,
    DATEPICKER_DAY_TEMPLATE,
    DATEPICKER_MONTH_SELECT,
    DATEPICKER_OVERLAY_SELECTOR,
    FOCUS_RESET_POSITION,
    LISTBOX_OPTION_SELECTOR,
    REACT_SELECT_MENU_SELECTOR,
    REACT_SELECT_OPTION_SELECTOR,
    RETRY_CLICK_POSITION,
)
from src.engine.errors import DateParseError, InteractionFailure
from src.engine.models import DetectedField, FieldOption, FieldType, TimeSubInput
from src.interaction.choice_fields import select_checkboxes, select_radio
from src.interaction.common import InteractionContext, find_option_match, match_text_index
from src.interaction.date_time_fields import fill_date, fill_time, parse_date, parse_time
from src.interaction.executor import InteractionExecutor, first_line
from src.interaction.text_fields import fill_email, fill_phone, fill_text
from src.interaction.widget_fields import (
    fill_autocomplete,
    select_dropdown,
    select_react_select,
    upload_file,
)
from tests.fakes import FakeElement, FakePage


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def ctx(page, fast_config):
    return InteractionContext(page=page, config=fast_config, correlation_id="test")


def add_choice_group(page: FakePage, prefix: str, kind: str, labels, checked=()):
    """Hidden inputs with <label for> click targets, the way most form libraries render them"""
    options = []
    for i, text in enumerate(labels, start=1):
        input_id = f"{prefix}-{kind}-{i}"
        page.add(id_selector(input_id), FakeElement(kind=kind, group=prefix, visible=False, checked=text in checked))
        label_selector = f'label[for="{input_id}"]'
        page.add(label_selector, FakeElement(tag="label", text=text, label_for=input_id))
        options.append(FieldOption(id=input_id, value=text, label=text, selector=label_selector))
    return tuple(options)


def clicks(page: FakePage):
    return [c for c in page.calls if c[0] == "click"]


# =============================================================================
# OPTION MATCHING
# =============================================================================

class TestOptionMatching:
    """Test exact option matching helpers"""

    def test_match_is_case_insensitive_on_value_or_label(self):
        options = [FieldOption(value="m", label="Male"), FieldOption(value="f", label="Female")]
        assert find_option_match(options, "female").value == "f"
        assert find_option_match(options, "M").label == "Male"

    def test_no_fuzzy_option_matching(self):
        options = [FieldOption(value="Female", label="Female")]
        assert find_option_match(options, "Fem") is None

    def test_match_text_index_exact_before_contains(self):
        texts = ["North Carolina", "Carolina"]
        assert match_text_index(texts, "carolina") == 1
        assert match_text_index(["North Carolina"], "carolina") is None
        assert match_text_index(["North Carolina"], "carolina", allow_contains=True) == 0


# =============================================================================
# CHOICE GROUPS
# =============================================================================

class TestRadio:
    """Test radio selection through label click targets"""

    async def test_select_radio_via_label(self, ctx, page):
        options = add_choice_group(page, "gender", "radio", ["Male", "Female", "Other"])
        field = DetectedField(label="Gender", type=FieldType.RADIO_GROUP, selector="#genterWrapper", options=options)

        assert await select_radio(ctx, field, "Male") is True

        assert page.elements[id_selector("gender-radio-1")].checked is True
        assert page.elements[id_selector("gender-radio-2")].checked is False
        assert clicks(page)[0] == ("click", 'label[for="gender-radio-1"]', True, None)

    async def test_retry_with_offset_click(self, ctx, page):
        options = add_choice_group(page, "gender", "radio", ["Male", "Female"])
        page.elements['label[for="gender-radio-2"]'].ignore_clicks = 1
        field = DetectedField(label="Gender", type=FieldType.RADIO_GROUP, selector="#g", options=options)

        assert await select_radio(ctx, field, "female") is True
        assert clicks(page)[-1] == ("click", 'label[for="gender-radio-2"]', True, RETRY_CLICK_POSITION)

    async def test_failure_after_retry(self, ctx, page):
        options = add_choice_group(page, "gender", "radio", ["Male"])
        page.elements['label[for="gender-radio-1"]'].ignore_clicks = 2
        field = DetectedField(label="Gender", type=FieldType.RADIO_GROUP, selector="#g", options=options)

        with pytest.raises(InteractionFailure, match="Failed to select radio option after retry"):
            await select_radio(ctx, field, "Male")

    async def test_no_matching_option(self, ctx, page):
        options = add_choice_group(page, "gender", "radio", ["Male", "Female"])
        field = DetectedField(label="Gender", type=FieldType.RADIO_GROUP, selector="#g", options=options)

        with pytest.raises(InteractionFailure) as exc_info:
            await select_radio(ctx, field, "Unknown")
        assert exc_info.value.reason == "No matching option found"
        assert exc_info.value.label == "Gender"
        assert clicks(page) == []

    async def test_option_without_label_uses_own_selector(self, ctx, page):
        page.add("#plan-a", FakeElement(kind="radio", group="plan"))
        field = DetectedField(
            label="Plan",
            type=FieldType.RADIO_GROUP,
            selector="#plans",
            options=(FieldOption(id="plan-a", value="A", label="A", selector="#plan-a"),),
        )
        assert await select_radio(ctx, field, "A") is True
        assert clicks(page)[0][1] == "#plan-a"


class TestCheckboxes:
    """Test multi-value checkbox selection"""

    async def test_already_checked_options_are_left_alone(self, ctx, page):
        options = add_choice_group(page, "hobbies", "checkbox", ["Sports", "Reading", "Music"], checked=("Sports",))
        field = DetectedField(label="Hobbies", type=FieldType.CHECKBOX_GROUP, selector="#h", options=options)

        assert await select_checkboxes(ctx, field, ["Sports", "Reading"]) is True

        assert page.elements[id_selector("hobbies-checkbox-1")].checked is True
        assert page.elements[id_selector("hobbies-checkbox-2")].checked is True
        assert page.elements[id_selector("hobbies-checkbox-3")].checked is False
        assert clicks(page) == [("click", 'label[for="hobbies-checkbox-2"]', True, None)]

    async def test_second_run_clicks_nothing(self, ctx, page):
        options = add_choice_group(page, "hobbies", "checkbox", ["Sports", "Reading"])
        field = DetectedField(label="Hobbies", type=FieldType.CHECKBOX_GROUP, selector="#h", options=options)

        await select_checkboxes(ctx, field, ["Sports", "Reading"])
        page.calls.clear()
        await select_checkboxes(ctx, field, ["Sports", "Reading"])

        assert clicks(page) == []
        assert page.elements[id_selector("hobbies-checkbox-1")].checked is True

    async def test_single_value_accepted(self, ctx, page):
        options = add_choice_group(page, "hobbies", "checkbox", ["Music"])
        field = DetectedField(label="Hobbies", type=FieldType.CHECKBOX_GROUP, selector="#h", options=options)
        assert await select_checkboxes(ctx, field, "Music") is True

    async def test_unknown_value_raises(self, ctx, page):
        options = add_choice_group(page, "hobbies", "checkbox", ["Music"])
        field = DetectedField(label="Hobbies", type=FieldType.CHECKBOX_GROUP, selector="#h", options=options)

        with pytest.raises(InteractionFailure, match="No matching checkbox found"):
            await select_checkboxes(ctx, field, ["Chess"])


# =============================================================================
# TEXT / EMAIL / PHONE
# =============================================================================

class TestTextFields:
    """Test text-like protocols"""

    async def test_fill_text_verified(self, ctx, page):
        page.add("#firstName")
        field = DetectedField(label="First Name", type=FieldType.TEXT, selector="#firstName")

        assert await fill_text(ctx, field, "Jane") is True
        assert page.elements["#firstName"].value == "Jane"
        assert ("blur", "#firstName") in page.calls

    async def test_fill_text_replaces_existing_value(self, ctx, page):
        page.add("#firstName", FakeElement(value="Old"))
        field = DetectedField(label="First Name", type=FieldType.TEXT, selector="#firstName")

        await fill_text(ctx, field, "Jane")
        assert page.elements["#firstName"].value == "Jane"

    async def test_fill_text_mismatch_is_unverified(self, ctx, page):
        page.add("#zip", FakeElement(max_chars=3))
        field = DetectedField(label="Zip", type=FieldType.TEXT, selector="#zip")

        assert await fill_text(ctx, field, "90210") is False

    async def test_email_verified(self, ctx, page):
        page.add("#userEmail")
        field = DetectedField(label="Email", type=FieldType.EMAIL, selector="#userEmail")
        assert await fill_email(ctx, field, "jane@example.com") is True

    async def test_email_read_back_failure_raises(self, ctx, page):
        page.add("#userEmail", FakeElement(max_chars=5))
        field = DetectedField(label="Email", type=FieldType.EMAIL, selector="#userEmail")

        with pytest.raises(InteractionFailure, match="Email validation failed: 'jane@'"):
            await fill_email(ctx, field, "jane@example.com")

    async def test_phone_types_digits_only(self, ctx, page):
        page.add("#userNumber")
        field = DetectedField(label="Mobile", type=FieldType.PHONE, selector="#userNumber")

        assert await fill_phone(ctx, field, "(555) 123-4567") is True
        assert ("type", "#userNumber", "5551234567", 0) in page.calls

    async def test_short_phone_raises(self, ctx, page):
        page.add("#userNumber")
        field = DetectedField(label="Mobile", type=FieldType.PHONE, selector="#userNumber")

        with pytest.raises(InteractionFailure, match="length 5 < 10"):
            await fill_phone(ctx, field, "12345")


# =============================================================================
# DATE / TIME
# =============================================================================

class TestParsing:
    """Test date and time parsing"""

    @pytest.mark.parametrize("raw", ["1990-03-15", "03/15/1990", "15 March 1990", "March 15, 1990", "1990/03/15"])
    def test_parse_date_formats(self, raw):
        assert parse_date(raw).isoformat() == "1990-03-15"

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(DateParseError, match="Invalid date value: not-a-date"):
            parse_date("not-a-date", "Date of Birth")

    @pytest.mark.parametrize("raw,expected", [
        ("14:5", ("14", "05", "PM")),
        ("9:30 am", ("09", "30", "AM")),
        ("7:15 PM", ("07", "15", "PM")),
        ("12:00", ("12", "00", "PM")),
        ("08:45", ("08", "45", "AM")),
    ])
    def test_parse_time(self, raw, expected):
        assert parse_time(raw) == expected

    @pytest.mark.parametrize("raw", ["1430", "ab:cd", ""])
    def test_parse_time_rejects_malformed(self, raw):
        with pytest.raises(InteractionFailure, match="Invalid time format"):
            parse_time(raw, "Pickup time")


class TestDateFields:
    """Test native and picker date protocols"""

    async def test_invalid_date_raises_before_touching_page(self, ctx, page):
        page.add("#dob")
        field = DetectedField(label="Date of Birth", type=FieldType.DATE, selector="#dob")

        with pytest.raises(DateParseError):
            await fill_date(ctx, field, "not-a-date")
        assert page.dom_calls() == []

    async def test_native_date_filled_in_iso(self, ctx, page):
        page.add("#visit")
        field = DetectedField(label="Visit date", type=FieldType.DATE, selector="#visit")

        assert await fill_date(ctx, field, "03/15/1990") is True
        assert page.elements["#visit"].value == "1990-03-15"

    async def test_picker_overlay_path(self, ctx, page):
        dob = page.add("#dateOfBirthInput")
        page.add(DATEPICKER_OVERLAY_SELECTOR)
        page.add(DATEPICKER_MONTH_SELECT, FakeElement(tag="select"))
        day = DATEPICKER_DAY_TEMPLATE.format(day="15")
        page.add(day)
        page.click_effects[day] = lambda: setattr(dob, "value", "15 Mar 1990")
        field = DetectedField(label="Date of Birth", type=FieldType.DATE_PICKER, selector="#dateOfBirthInput")

        assert await fill_date(ctx, field, "1990-03-15") is True
        assert ("select_option", DATEPICKER_MONTH_SELECT, None, "March", None) in page.calls
        assert ("click", day, False, None) in page.calls

    async def test_picker_falls_back_to_typing(self, ctx, page):
        page.add("#dateOfBirthInput")
        field = DetectedField(label="Date of Birth", type=FieldType.DATE_PICKER, selector="#dateOfBirthInput")

        assert await fill_date(ctx, field, "1990-03-15") is True
        assert ("type", "#dateOfBirthInput", "03/15/1990", 0) in page.calls
        assert ("press", "#dateOfBirthInput", "Enter") in page.calls


class TestTimeFields:
    """Test split and native time protocols"""

    @staticmethod
    def split_time_field(page: FakePage, hour_chars=None) -> DetectedField:
        base = 'div[role="listitem"]:nth-of-type(3)'
        subs = (
            TimeSubInput(part="hour", selector=f'{base} input[aria-label="Hour" i]'),
            TimeSubInput(part="minute", selector=f'{base} input[aria-label="Minute" i]'),
            TimeSubInput(part="ampm", selector=f'{base} div[role="listbox"]'),
        )
        page.add(subs[0].selector, FakeElement(max_chars=hour_chars))
        page.add(subs[1].selector)
        page.add(subs[2].selector, FakeElement(tag="div"))
        return DetectedField(label="Pickup time", type=FieldType.TIME_GROUP, selector=base, sub_inputs=subs)

    async def test_afternoon_time_with_meridiem_menu(self, ctx, page):
        field = self.split_time_field(page)
        page.texts[AMPM_OPTION_SELECTOR] = ["AM", "PM"]

        assert await fill_time(ctx, field, "14:5") is True

        assert page.elements[field.sub_inputs[0].selector].value == "14"
        assert page.elements[field.sub_inputs[1].selector].value == "05"
        assert ("click_nth", AMPM_OPTION_SELECTOR, 1) in page.calls

    async def test_meridiem_keyboard_fallback(self, ctx, page):
        field = self.split_time_field(page)

        assert await fill_time(ctx, field, "9:30 am") is True
        assert ("keyboard_type", "A") in page.calls
        assert ("keyboard_press", "Enter") in page.calls

    async def test_read_back_mismatch_raises(self, ctx, page):
        field = self.split_time_field(page, hour_chars=1)
        page.texts[AMPM_OPTION_SELECTOR] = ["AM", "PM"]

        with pytest.raises(InteractionFailure, match="Failed to fill time field: hour expected 14"):
            await fill_time(ctx, field, "14:05")

    async def test_native_time_input_gets_24_hour_value(self, ctx, page):
        page.add("#appt")
        field = DetectedField(label="Appointment", type=FieldType.TIME_GROUP, selector="#appt")

        assert await fill_time(ctx, field, "2:30 pm") is True
        assert page.elements["#appt"].value == "14:30"


# =============================================================================
# DROPDOWNS / WIDGETS / FILES
# =============================================================================

class TestDropdowns:
    """Test native, listbox and searchable selects"""

    async def test_native_select_by_option_index(self, ctx, page):
        page.add("#cars", FakeElement(tag="select", options=["", "volvo", "saab"]))
        field = DetectedField(
            label="Car",
            type=FieldType.SELECT,
            selector="#cars",
            options=(
                FieldOption(value="", label="Choose"),
                FieldOption(value="volvo", label="Volvo"),
                FieldOption(value="saab", label="Saab"),
            ),
        )

        assert await select_dropdown(ctx, field, "Saab") is True
        assert ("select_option", "#cars", 2, None, None) in page.calls

    async def test_listbox_select(self, ctx, page):
        selector = 'div[role="listitem"]:nth-of-type(2) div[role="listbox"]'
        box = page.add(selector, FakeElement(tag="div", attrs={"role": "listbox"}))
        page.visible_selectors.add(LISTBOX_OPTION_SELECTOR)
        texts = ["Choose", "India", "Japan"]
        page.texts[LISTBOX_OPTION_SELECTOR] = texts
        page.nth_effects[LISTBOX_OPTION_SELECTOR] = lambda i: setattr(box, "text", texts[i])
        field = DetectedField(label="Country", type=FieldType.SELECT, selector=selector)

        assert await select_dropdown(ctx, field, "japan") is True
        assert ("click_nth", LISTBOX_OPTION_SELECTOR, 2) in page.calls

    async def test_listbox_without_match_closes_menu(self, ctx, page):
        selector = "#country"
        page.add(selector, FakeElement(tag="div", attrs={"role": "listbox"}))
        page.visible_selectors.add(LISTBOX_OPTION_SELECTOR)
        page.texts[LISTBOX_OPTION_SELECTOR] = ["India"]
        field = DetectedField(label="Country", type=FieldType.SELECT, selector=selector)

        with pytest.raises(InteractionFailure, match="No matching option found"):
            await select_dropdown(ctx, field, "Peru")
        assert ("keyboard_press", "Escape") in page.calls

    async def test_react_select_menu_path(self, ctx, page):
        state = page.add("#state", FakeElement(tag="div"))
        page.visible_selectors.add(REACT_SELECT_MENU_SELECTOR)
        texts = ["NCR", "Uttar Pradesh", "Haryana"]
        page.texts[REACT_SELECT_OPTION_SELECTOR] = texts
        page.nth_effects[REACT_SELECT_OPTION_SELECTOR] = lambda i: setattr(state, "text", texts[i])
        field = DetectedField(
            label="State", type=FieldType.REACT_SELECT, selector="#state", input_locator="#react-select-3-input"
        )

        assert await select_react_select(ctx, field, "Haryana") is True
        assert ("click_nth", REACT_SELECT_OPTION_SELECTOR, 2) in page.calls
        assert ("click", "body", True, FOCUS_RESET_POSITION) in page.calls
        assert ("blur_active",) in page.calls

    async def test_react_select_types_when_menu_never_opens(self, ctx, page):
        page.add("#state", FakeElement(tag="div"))
        page.add("#react-select-3-input")
        field = DetectedField(
            label="State", type=FieldType.REACT_SELECT, selector="#state", input_locator="#react-select-3-input"
        )

        verified = await select_react_select(ctx, field, "Delhi")

        assert ("fill", "#react-select-3-input", "Delhi") in page.calls
        assert ("press", "#react-select-3-input", "Enter") in page.calls
        assert ("blur_active",) in page.calls
        # the container never rendered the value
        assert verified is False


class TestWidgets:
    """Test autocomplete and file protocols"""

    async def test_autocomplete_commits_each_value(self, ctx, page):
        page.add("#subjectsInput")
        page.texts[AUTOCOMPLETE_TOKEN_SELECTOR] = ["English"]
        suggestions = {"Maths": "Maths", "Phys": "Physics"}

        def commit(key):
            typed = page.elements["#subjectsInput"].value
            page.texts[AUTOCOMPLETE_TOKEN_SELECTOR].append(suggestions[typed])
            page.elements["#subjectsInput"].value = ""

        page.press_effects["#subjectsInput"] = commit
        field = DetectedField(label="Subjects", type=FieldType.AUTOCOMPLETE, selector="#subjectsInput")

        assert await fill_autocomplete(ctx, field, ["Maths", "Phys"]) is True
        presses = [c for c in page.calls if c[0] == "press"]
        assert presses == [("press", "#subjectsInput", "Enter")] * 2

    async def test_autocomplete_without_rendered_token_is_unverified(self, ctx, page):
        page.add("#subjectsInput")
        page.texts[AUTOCOMPLETE_TOKEN_SELECTOR] = ["Maths"]
        field = DetectedField(label="Subjects", type=FieldType.AUTOCOMPLETE, selector="#subjectsInput")

        # a token left over from earlier input does not count
        assert await fill_autocomplete(ctx, field, "Maths") is False
        assert await fill_autocomplete(ctx, field, "NoSuchSubject") is False

    async def test_upload_resolves_relative_path(self, ctx, page):
        page.add("#uploadPicture")
        field = DetectedField(label="Picture", type=FieldType.FILE, selector="#uploadPicture")

        assert await upload_file(ctx, field, "photo.png") is True
        assert ("set_input_files", "#uploadPicture", os.path.abspath("photo.png")) in page.calls

    async def test_upload_failure_is_soft(self, ctx, page):
        page.add("#uploadPicture", FakeElement(reject_files=True))
        field = DetectedField(label="Picture", type=FieldType.FILE, selector="#uploadPicture")

        assert await upload_file(ctx, field, "/nope/missing.png") is False


# =============================================================================
# EXECUTOR
# =============================================================================

class TestInteractionExecutor:
    """Test dispatch and outcome recording"""

    async def test_verified_outcome(self, page, fast_config):
        page.add("#firstName")
        field = DetectedField(label="First Name", type=FieldType.TEXT, selector="#firstName")

        outcome = await InteractionExecutor(fast_config).fill(field, "Jane", page)

        assert outcome.verified is True
        assert outcome.error is None
        assert outcome.attempted_value == "Jane"

    async def test_date_parse_error_recorded_without_dom_calls(self, page, fast_config):
        field = DetectedField(label="Date of Birth", type=FieldType.DATE, selector="#dob")

        outcome = await InteractionExecutor(fast_config).fill(field, "not-a-date", page)

        assert outcome.failed
        assert "Invalid date value: not-a-date" in outcome.error
        assert 'field "Date of Birth"' in outcome.error
        assert page.dom_calls() == []

    async def test_unexpected_exception_wrapped_with_label_and_value(self, page, fast_config):
        field = DetectedField(label="Name", type=FieldType.TEXT, selector="#missing")

        outcome = await InteractionExecutor(fast_config).fill(field, "Jane", page)

        assert outcome.error == 'Timeout 5000ms exceeded. (field "Name", value "Jane")'
        assert outcome.verified is False

    async def test_unlabelled_failure_gets_field_label(self, page, fast_config):
        async def failing(ctx, field, value):
            raise InteractionFailure("boom")

        executor = InteractionExecutor(fast_config, handlers={FieldType.TEXT: failing})
        field = DetectedField(label="Notes", type=FieldType.TEXT, selector="#notes")

        outcome = await executor.fill(field, "x", page)
        assert outcome.error == 'boom (field "Notes", value "x")'

    async def test_missing_handler(self, page, fast_config):
        executor = InteractionExecutor(fast_config, handlers={FieldType.TEXT: fill_text})
        field = DetectedField(label="Email", type=FieldType.EMAIL, selector="#e")

        outcome = await executor.fill(field, "a@b.co", page)
        assert "No handler for field type email" in outcome.error

    async def test_soft_file_failure_is_unverified_not_failed(self, page, fast_config):
        page.add("#uploadPicture", FakeElement(reject_files=True))
        field = DetectedField(label="Picture", type=FieldType.FILE, selector="#uploadPicture")

        outcome = await InteractionExecutor(fast_config).fill(field, "missing.png", page)

        assert outcome.verified is False
        assert outcome.error is None

    def test_first_line(self):
        assert first_line("Timeout 30000ms exceeded.\n=== logs ===\nwaiting") == "Timeout 30000ms exceeded."
