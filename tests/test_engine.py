"""
Tests for the flow engine (dispatcher).

Tests cover:
- Menu selection, invalid selection and retry
- Form field collection, validation re-prompts and password masking
- Login, account creation and patient search processors
- Record handlers and role-based access
- Sentinels (role menu, logout) and implicit logout at the login menu
- Lookup errors and unknown node types
- The run loop
"""

import random
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from medrecords.core.demo_data import write_demo_data
from medrecords.core.stores import PATIENT_NHI_RANGE, PatientStore, UserStore
from medrecords.tui.engine import FlowEngine
from medrecords.tui.graph import (
    ADMIN_MENU,
    LOGIN_MENU,
    LOGOUT,
    PATIENT_MENU,
    PROFESSIONAL_MENU,
    ROLE_MENU,
    SEARCH_PATIENT_FORM,
    USER_CREATE_FORM,
    USER_LOGIN_FORM,
    VIEW_ALL_RECORDS,
    VIEW_ALL_USERS,
    VIEW_LOGS,
    VIEW_MY_PATIENTS,
    VIEW_MY_PROFILE,
    VIEW_MY_RECORD,
    FormField,
    FormNode,
    MenuItem,
    MenuNode,
    NavigationGraph,
    RecordNode,
    build_default_graph,
)
from medrecords.tui.renderer import Renderer


class ScriptedInput:
    """Line reader that replays fixed answers and raises EOFError when done."""

    def __init__(self, *lines):
        self.lines = list(lines)
        self.password_flags = []

    def __call__(self, password=False):
        self.password_flags.append(password)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)

    def feed(self, *lines):
        self.lines.extend(lines)


@dataclass(frozen=True)
class WidgetNode:
    """A node type the engine has no handler for."""

    id: str
    name: str
    type: str = "widget"


@pytest.fixture
def stores(tmp_path):
    users_file = tmp_path / "users.json"
    patients_file = tmp_path / "patients.json"
    write_demo_data(users_file, patients_file, count=3, seed=11)
    return UserStore(users_file), PatientStore(patients_file)


@pytest.fixture
def console():
    return MagicMock()


@pytest.fixture
def scripted():
    return ScriptedInput()


def make_engine(stores, console, scripted, graph=None, tmp_path=None):
    users, patients = stores
    return FlowEngine(
        graph or build_default_graph(),
        users,
        patients,
        renderer=Renderer(console),
        read_line=scripted,
        log_dir=tmp_path or "logs",
    )


@pytest.fixture
def engine(stores, console, scripted, tmp_path):
    return make_engine(stores, console, scripted, tmp_path=tmp_path / "logs")


def printed(console):
    return [call.args[0] for call in console.print.call_args_list]


def login_as(engine, email):
    engine.session.login(engine.users.find_by_email(email))


class TestMenu:

    def test_selection_follows_action(self, engine, scripted):
        scripted.feed("1")
        assert engine.dispatch(LOGIN_MENU) == USER_LOGIN_FORM

    def test_menu_screen_contents(self, engine, scripted, console):
        scripted.feed("2")
        engine.dispatch(LOGIN_MENU)

        assert engine.screen.header == "Welcome! Please login or create an account."
        assert engine.screen.body == "1. Login (Existing user)\n2. Create account (New user)"
        assert engine.screen.prompt == "Select an option (1-2)"
        assert "> Select an option (1-2): " in printed(console)

    def test_out_of_range_selection(self, engine, scripted):
        scripted.feed("9", "")
        assert engine.dispatch(LOGIN_MENU) is None
        assert engine.screen.message == "Invalid Selection!"
        assert engine.session.current_user is None

    @pytest.mark.parametrize("choice", ["", "0", "abc", "-1", "1.0", "²"])
    def test_invalid_selections(self, engine, scripted, choice):
        scripted.feed(choice, "")
        assert engine.dispatch(LOGIN_MENU) is None
        assert engine.screen.message == "Invalid Selection!"

    def test_input_is_cleaned_before_matching(self, engine, scripted):
        scripted.feed("  <2>  ")
        assert engine.dispatch(LOGIN_MENU) == USER_CREATE_FORM

    def test_invalid_selection_waits_for_enter(self, engine, scripted):
        scripted.feed("7")
        with pytest.raises(EOFError):
            engine.dispatch(LOGIN_MENU)
        # Menu read plus the continue read
        assert len(scripted.password_flags) == 2


class TestLoginForm:

    def test_successful_login_goes_to_role_menu(self, engine, scripted):
        scripted.feed("1")
        next_id = engine.dispatch(LOGIN_MENU)
        assert next_id == USER_LOGIN_FORM

        scripted.feed("patient@email.com", "patient123", "")
        assert engine.dispatch(next_id) == PATIENT_MENU
        assert engine.session.current_user["email"] == "patient@email.com"
        assert "password" not in engine.session.current_user

    @pytest.mark.parametrize("email,password,menu", [
        ("pro@email.com", "pro123", PROFESSIONAL_MENU),
        ("admin@email.com", "admin123", ADMIN_MENU),
    ])
    def test_role_specific_menu(self, engine, scripted, email, password, menu):
        scripted.feed(email, password, "")
        assert engine.dispatch(USER_LOGIN_FORM) == menu

    def test_wrong_password(self, engine, scripted, console):
        scripted.feed("patient@email.com", "wrong", "")
        assert engine.dispatch(USER_LOGIN_FORM) == LOGIN_MENU
        assert engine.session.current_user is None
        assert "[Invalid email or password!]" in printed(console)

    def test_unknown_email(self, engine, scripted):
        scripted.feed("ghost@email.com", "whatever", "")
        assert engine.dispatch(USER_LOGIN_FORM) == LOGIN_MENU

    def test_password_read_without_echo(self, engine, scripted):
        scripted.feed("patient@email.com", "patient123", "")
        engine.dispatch(USER_LOGIN_FORM)
        assert scripted.password_flags[:2] == [False, True]

    def test_required_field_reprompts(self, engine, scripted, console):
        scripted.feed("", "", "patient@email.com", "patient123", "")
        assert engine.dispatch(USER_LOGIN_FORM) == PATIENT_MENU
        assert "[Email is required!]" in printed(console)

    def test_invalid_email_reprompts_same_field(self, engine, scripted):
        scripted.feed("not-an-email", "")
        with pytest.raises(EOFError):
            engine.dispatch(USER_LOGIN_FORM)
        assert engine.screen.prompt == "Enter email"
        assert not engine.screen.body

    def test_password_masked_in_form_body(self, engine, scripted):
        scripted.feed("patient@email.com", "patient123")
        with pytest.raises(EOFError):
            engine.dispatch(USER_LOGIN_FORM)
        # Waiting on the login success message: last body shown was after email
        assert engine.screen.body == "Email: patient@email.com"


class TestCreateAccountForm:

    def test_mismatched_confirmation_reprompts(self, engine, scripted, console):
        scripted.feed("Ann", "Lee", "ann@example.com", "secret1", "nope", "")
        with pytest.raises(EOFError):
            engine.dispatch(USER_CREATE_FORM)

        assert "[Passwords do not match!]" in printed(console)
        assert engine.screen.prompt == "Enter confirm password"
        assert engine.screen.message is None
        assert engine.users.find_by_email("ann@example.com") is None

    def test_partial_listing_masks_passwords(self, engine, scripted):
        scripted.feed("Ann", "Lee", "ann@example.com", "secret1")
        with pytest.raises(EOFError):
            engine.dispatch(USER_CREATE_FORM)

        assert engine.screen.body == (
            "First name: Ann\n"
            "Last name: Lee\n"
            "Email: ann@example.com\n"
            "Password: *******"
        )

    def test_creates_patient_account(self, engine, scripted):
        scripted.feed("Ann", "Lee", "ann@example.com", "secret1", "secret1", "")
        assert engine.dispatch(USER_CREATE_FORM) == LOGIN_MENU

        user = engine.users.find_by_email("ann@example.com")
        assert user["role"] == "patient"
        assert "confirmPassword" not in user
        assert engine.patients.find_by_nhi(user["nhi"]) is not None
        assert engine.session.current_user is None

    def test_duplicate_email(self, engine, scripted, console):
        scripted.feed("Dan", "L", "patient@email.com", "pw", "pw", "")
        assert engine.dispatch(USER_CREATE_FORM) == LOGIN_MENU
        assert "[An account with that email already exists!]" in printed(console)

    def test_new_nhi_avoids_existing_patient_records(self, engine, scripted):
        orphan_nhi = random.Random(5).randint(*PATIENT_NHI_RANGE)
        orphan = {"nhi": orphan_nhi, "medicalHistory": {"allergies": ["Bee Stings"], "notes": "private"}}
        engine.patients.save_all(engine.patients.load_all() + [orphan])
        engine.users.rng = random.Random(5)

        scripted.feed("Ann", "Lee", "ann@example.com", "secret1", "secret1", "")
        assert engine.dispatch(USER_CREATE_FORM) == LOGIN_MENU
        user = engine.users.find_by_email("ann@example.com")
        assert user["nhi"] != orphan_nhi

        login_as(engine, "ann@example.com")
        scripted.feed("")
        engine.dispatch(VIEW_MY_RECORD)
        assert "Bee Stings" not in engine.screen.body
        assert "private" not in engine.screen.body

    def test_account_removed_when_record_cannot_be_opened(self, engine, scripted, console, monkeypatch):
        monkeypatch.setattr(engine.patients, "create_for_user", lambda user: False)
        scripted.feed("Ann", "Lee", "ann@example.com", "secret1", "secret1", "")

        assert engine.dispatch(USER_CREATE_FORM) == LOGIN_MENU
        assert "[Failed to create your medical record! Please try again.]" in printed(console)
        assert engine.users.find_by_email("ann@example.com") is None


class TestSearchPatientForm:

    def test_professional_finds_patient(self, engine, scripted, console):
        login_as(engine, "pro@email.com")
        scripted.feed("100001", "")

        assert engine.dispatch(SEARCH_PATIENT_FORM) == PROFESSIONAL_MENU
        assert engine.screen.header == "Patient Record: Daniel LaRusso"
        assert "NHI:           100001" in engine.screen.body

    def test_unknown_nhi(self, engine, scripted, console):
        login_as(engine, "admin@email.com")
        scripted.feed("123", "")

        assert engine.dispatch(SEARCH_PATIENT_FORM) == ADMIN_MENU
        assert "[No patient found with NHI 123!]" in printed(console)

    def test_patient_cannot_search(self, engine, scripted, console):
        login_as(engine, "patient@email.com")
        scripted.feed("100001", "")

        assert engine.dispatch(SEARCH_PATIENT_FORM) == PATIENT_MENU
        assert "[Access denied!]" in printed(console)

    def test_malformed_history_still_displays(self, engine, scripted):
        broken = {"nhi": 150000, "firstName": "Broken", "medicalHistory": ["asthma"]}
        engine.patients.save_all(engine.patients.load_all() + [broken])
        login_as(engine, "admin@email.com")
        scripted.feed("150000", "")

        assert engine.dispatch(SEARCH_PATIENT_FORM) == ADMIN_MENU
        assert "NHI:           150000" in engine.screen.body
        assert "Blood type:  -" in engine.screen.body


class TestRecords:

    def test_patient_views_own_record(self, engine, scripted):
        login_as(engine, "patient@email.com")
        scripted.feed("")

        assert engine.dispatch(VIEW_MY_RECORD) == PATIENT_MENU
        assert "Cobra Venom" in engine.screen.body
        assert engine.screen.prompt == "continue"

    def test_profile_hides_password(self, engine, scripted):
        login_as(engine, "pro@email.com")
        scripted.feed("")

        engine.dispatch(VIEW_MY_PROFILE)
        assert "pro@email.com" in engine.screen.body
        assert "pro123" not in engine.screen.body

    def test_professional_sees_assigned_patients(self, engine, scripted):
        login_as(engine, "pro@email.com")
        scripted.feed("")

        assert engine.dispatch(VIEW_MY_PATIENTS) == PROFESSIONAL_MENU
        assert engine.screen.header == "My Patients (4)"

    def test_all_records(self, engine, scripted):
        login_as(engine, "admin@email.com")
        scripted.feed("")

        engine.dispatch(VIEW_ALL_RECORDS)
        assert engine.screen.body.count("\n") == 3

    def test_all_users_is_admin_only(self, engine, scripted, console):
        login_as(engine, "pro@email.com")
        scripted.feed("")

        assert engine.dispatch(VIEW_ALL_USERS) == PROFESSIONAL_MENU
        assert "[Access denied!]" in printed(console)

    def test_admin_lists_users(self, engine, scripted):
        login_as(engine, "admin@email.com")
        scripted.feed("")

        engine.dispatch(VIEW_ALL_USERS)
        assert engine.screen.header == "All Users (6)"

    def test_log_viewer_without_log_file(self, engine, scripted):
        login_as(engine, "admin@email.com")
        scripted.feed("")

        engine.dispatch(VIEW_LOGS)
        assert engine.screen.body == "No log file found for today."

    def test_anonymous_access_denied(self, engine, scripted, console):
        scripted.feed("")
        assert engine.dispatch(VIEW_MY_PROFILE) == LOGIN_MENU
        assert "[Access denied!]" in printed(console)

    def test_unregistered_record_not_implemented(self, stores, console, scripted):
        graph = NavigationGraph([
            MenuNode(PATIENT_MENU, "Patient Menu", {1: MenuItem("1. Secret", "VIEW_SECRET")}),
            RecordNode("VIEW_SECRET", "Secret Record"),
        ])
        engine = make_engine(stores, console, scripted, graph=graph)
        login_as(engine, "patient@email.com")
        scripted.feed("")

        assert engine.dispatch("VIEW_SECRET") == PATIENT_MENU
        assert "[Secret Record is not implemented yet!]" in printed(console)


class TestSentinelsAndLogout:

    def test_role_menu_sentinel_resolves_from_session(self, engine, scripted):
        login_as(engine, "pro@email.com")
        scripted.feed("1", "")
        # Professional menu item 1 -> my patients
        assert engine.dispatch(ROLE_MENU) == VIEW_MY_PATIENTS

    def test_logout_sentinel(self, engine, scripted, console):
        login_as(engine, "patient@email.com")
        scripted.feed("")

        assert engine.dispatch(LOGOUT) == LOGIN_MENU
        assert engine.session.current_user is None
        assert "[You have been logged out!]" in printed(console)

    def test_login_menu_logs_out_first(self, engine, scripted, console):
        login_as(engine, "admin@email.com")
        scripted.feed("", "1")

        assert engine.dispatch(LOGIN_MENU) == USER_LOGIN_FORM
        assert engine.session.current_user is None
        assert "[You have been logged out!]" in printed(console)

    def test_login_menu_anonymous_no_logout_message(self, engine, scripted, console):
        scripted.feed("1")
        engine.dispatch(LOGIN_MENU)
        assert "[You have been logged out!]" not in printed(console)

    def test_menu_logout_item(self, engine, scripted):
        login_as(engine, "patient@email.com")
        scripted.feed("3")
        assert engine.dispatch(PATIENT_MENU) == LOGOUT


class TestLookupErrors:

    def test_unknown_identifier_falls_back(self, engine, scripted, console):
        scripted.feed("")
        assert engine.dispatch("NOWHERE") == LOGIN_MENU
        assert "[Navigation error: 'NOWHERE' does not exist!]" in printed(console)

    def test_unknown_identifier_logged_in(self, engine, scripted):
        login_as(engine, "pro@email.com")
        scripted.feed("")
        assert engine.dispatch("NOWHERE") == PROFESSIONAL_MENU

    def test_missing_role_menu_falls_back_to_login(self, stores, console, scripted):
        graph = NavigationGraph([MenuNode(LOGIN_MENU, "Login", {1: MenuItem("1. Login", USER_LOGIN_FORM)})])
        engine = make_engine(stores, console, scripted, graph=graph)
        login_as(engine, "admin@email.com")
        scripted.feed("")
        assert engine.dispatch(ADMIN_MENU) == LOGIN_MENU

    def test_unknown_node_type(self, stores, console, scripted):
        graph = NavigationGraph([WidgetNode("WIDGET", "Widget")])
        engine = make_engine(stores, console, scripted, graph=graph)
        scripted.feed("")

        assert engine.dispatch("WIDGET") == LOGIN_MENU
        assert "[Unknown object type: widget]" in printed(console)

    def test_unregistered_form_is_acknowledged(self, stores, console, scripted):
        graph = NavigationGraph([
            FormNode("FEEDBACK_FORM", "Feedback", (FormField("comment", "Comment"),), next=LOGIN_MENU),
        ])
        engine = make_engine(stores, console, scripted, graph=graph)
        scripted.feed("Great!", "")

        assert engine.dispatch("FEEDBACK_FORM") == LOGIN_MENU
        assert "[Form submitted!]" in printed(console)


class TestRunLoop:

    def test_run_until_input_ends(self, engine, scripted):
        scripted.feed("1", "patient@email.com", "patient123", "", "1", "")
        with pytest.raises(EOFError):
            engine.run()

        assert engine.session.current_user["email"] == "patient@email.com"
        assert engine.screen.header == "Patient Menu"

    def test_run_retries_menu_after_invalid_selection(self, engine, scripted):
        scripted.feed("9", "", "2")
        with pytest.raises(EOFError):
            engine.run()
        assert engine.screen.header == "Create Account"

    def test_full_logout_cycle(self, engine, scripted):
        scripted.feed("1", "pro@email.com", "pro123", "", "5", "")
        with pytest.raises(EOFError):
            engine.run()
        assert engine.session.current_user is None
        assert engine.screen.header == "Welcome! Please login or create an account."
