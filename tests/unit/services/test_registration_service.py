"""Unit tests for registration_service."""
import random
from unittest.mock import MagicMock

import pytest

from src.services.rate_limiter import SlidingWindowRateLimiter
from src.services.registration_service import (
    GROUP_THEME_NAMES,
    MAX_RANDOM_ATTEMPTS,
    add_random_student,
    delete_all_students,
    delete_student,
    get_registration_count,
    get_registrations,
    register_group,
    register_student,
    subscribe_to_registrations,
)
from src.services.store import GROUPS, REGISTRATIONS, Where
from src.utils.exceptions import (
    UNIQUE_VIOLATION,
    AlreadyRegisteredError,
    GroupCreationFailedError,
    NotFoundError,
    RateLimitExceededError,
    RegistrationFailedError,
    RollbackFailure,
    StoreError,
    StoreOperationError,
    ValidationError,
)
from src.utils.validation import validate_phone

from tests.conftest import FlakyStore, make_registrant

SARA = "01012345678"
ALI = "01112345678"
OMAR = "01212345678"
LINA = "01512345678"


@pytest.fixture
def valid_form():
    return {"name": "Sara Ahmed", "phone": SARA, "interest": "software", "college": "كلية الهندسة"}


@pytest.fixture
def teammates():
    return [
        {"name": "Ali", "phone": ALI},
        {"name": "Omar", "phone": OMAR},
        {"name": "Lina", "phone": LINA, "college": "كلية التجارة"},
    ]


def _register_sara_group(store, teammates, **kwargs):
    return register_group(store, "Sara", SARA, "كلية الهندسة", "software", teammates, **kwargs)


class TestRegisterStudent:
    """Test register_student function."""

    def test_register_success(self, store, valid_form):
        """A valid form creates one unassigned, real registrant."""
        registrant = register_student(store, valid_form)

        assert registrant.phone == SARA
        assert registrant.assigned is False
        assert registrant.group_id is None
        assert registrant.is_dummy is False
        assert store.count(REGISTRATIONS) == 1

    def test_register_sanitizes_input(self, store, valid_form):
        """Whitespace is trimmed and angle brackets removed."""
        valid_form["name"] = "  Sara<script>  "
        valid_form["phone"] = f" {SARA} "

        registrant = register_student(store, valid_form)

        assert registrant.name == "Sarascript"
        assert registrant.phone == SARA

    @pytest.mark.parametrize("field,value", [
        ("name", ""),
        ("phone", "0101234567"),
        ("phone", "01312345678"),
        ("interest", "design"),
    ])
    def test_register_invalid_form(self, store, valid_form, field, value):
        """Invalid fields are rejected before any write."""
        valid_form[field] = value

        with pytest.raises(ValidationError):
            register_student(store, valid_form)

        assert store.writes == []

    def test_register_duplicate_phone(self, store, valid_form):
        """Second registration of the same phone is a conflict."""
        register_student(store, valid_form)

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            register_student(store, dict(valid_form, name="Someone Else"))

        assert exc_info.value.phone == SARA
        assert exc_info.value.message == "أنت مسجل بالفعل"
        assert store.count(REGISTRATIONS) == 1

    def test_register_race_on_unique_constraint(self, store, valid_form):
        """A unique violation at insert time is reported as a conflict too."""
        store.fail_when("insert", REGISTRATIONS, code=UNIQUE_VIOLATION)

        with pytest.raises(AlreadyRegisteredError):
            register_student(store, valid_form)

    def test_register_store_failure(self, store, valid_form):
        store.fail_when("insert", REGISTRATIONS)

        with pytest.raises(RegistrationFailedError):
            register_student(store, valid_form)

    def test_register_rate_limited(self, store, valid_form):
        """Too many attempts from one phone are rejected before validation."""
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60, clock=lambda: 100.0)
        bad_form = dict(valid_form, interest="design")

        for _ in range(2):
            with pytest.raises(ValidationError):
                register_student(store, bad_form, rate_limiter=limiter)

        with pytest.raises(RateLimitExceededError):
            register_student(store, valid_form, rate_limiter=limiter)
        assert store.count(REGISTRATIONS) == 0


class TestRegisterGroup:
    """Test register_group function."""

    def test_register_group_success(self, store, teammates):
        """Leader and teammates become one assigned group."""
        result = _register_sara_group(store, teammates, rng=random.Random(0), clock=lambda: 1700000001.5)

        theme, suffix = result.group.name.split(" #")
        assert theme in GROUP_THEME_NAMES
        assert suffix == "1500"
        assert result.group.member_count == 4
        assert [m.phone for m in result.members] == [SARA, ALI, OMAR, LINA]
        assert result.group.members == [m.id for m in result.members]
        for member in result.members:
            assert member.assigned is True
            assert member.group_id == result.group.id

        stored = store.select(REGISTRATIONS, Where().eq("group_id", result.group.id))
        assert len(stored) == 4

    def test_teammate_college_defaults_to_leader(self, store, teammates):
        result = _register_sara_group(store, teammates)

        colleges = {m.phone: m.college for m in result.members}
        assert colleges[ALI] == "كلية الهندسة"
        assert colleges[LINA] == "كلية التجارة"

    def test_teammate_role_is_ignored(self, store, teammates):
        """Registrations have no role column; a submitted role is dropped."""
        teammates[0]["role"] = "CTO"

        result = _register_sara_group(store, teammates)

        stored = store.select(REGISTRATIONS, Where().eq("phone", ALI))[0]
        assert "role" not in stored
        assert result.group.member_count == 4

    def test_conflict_rolls_back_earlier_members(self, store, teammates):
        """
        Omar is already registered: Sara and Ali are removed again,
        Lina is never inserted, and no group is created.
        """
        store.insert(REGISTRATIONS, make_registrant(1, phone=OMAR, name="Omar"))
        store.calls.clear()

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            _register_sara_group(store, teammates)

        assert exc_info.value.phone == OMAR
        assert exc_info.value.rollback_errors == []

        phones = {r["phone"] for r in store.select(REGISTRATIONS)}
        assert phones == {OMAR}
        assert store.count(GROUPS) == 0

        inserted = [payload["phone"] for op, table, payload in store.calls if op == "insert"]
        assert inserted == [SARA, ALI, OMAR]
        assert len([c for c in store.calls if c[0] == "delete"]) == 2

    def test_compensations_run_in_reverse(self, store, teammates):
        store.insert(REGISTRATIONS, make_registrant(1, phone=LINA, name="Lina"))
        deleted = []
        original_delete = store.delete

        def tracking_delete(table, where):
            rows = original_delete(table, where)
            deleted.extend(r["phone"] for r in rows)
            return rows

        store.delete = tracking_delete

        with pytest.raises(AlreadyRegisteredError):
            _register_sara_group(store, teammates)

        assert deleted == [OMAR, ALI, SARA]

    def test_failed_rollback_is_reported_with_original_error(self, store, teammates):
        """Compensation failures are attached; the conflict is still raised."""
        store.insert(REGISTRATIONS, make_registrant(1, phone=LINA, name="Lina"))
        store.fail_when("delete", REGISTRATIONS)

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            _register_sara_group(store, teammates)

        errors = exc_info.value.rollback_errors
        assert len(errors) == 3
        assert all(isinstance(e, RollbackFailure) for e in errors)

    def test_group_insert_failure_rolls_back_all_members(self, store, teammates):
        store.fail_when("insert", GROUPS)

        with pytest.raises(GroupCreationFailedError) as exc_info:
            _register_sara_group(store, teammates)

        assert exc_info.value.rollback_errors == []
        assert store.count(REGISTRATIONS) == 0

    def test_non_conflict_insert_failure(self, store, teammates):
        store.fail_when("insert", REGISTRATIONS, lambda row: row["phone"] == ALI)

        with pytest.raises(RegistrationFailedError):
            _register_sara_group(store, teammates)

        assert store.count(REGISTRATIONS) == 0

    def test_group_id_backfill_failure_still_returns_group(self, store, teammates):
        """The group exists even if linking members to it fails."""
        store.fail_when("update", REGISTRATIONS)

        result = _register_sara_group(store, teammates)

        assert store.count(GROUPS) == 1
        assert all(m.group_id is None for m in result.members)
        assert all(m.assigned for m in result.members)

    def test_invalid_teammate_phone(self, store, teammates):
        """Teammate errors name the member's position, leader being 1."""
        teammates[0]["phone"] = "12345"

        with pytest.raises(ValidationError) as exc_info:
            _register_sara_group(store, teammates)

        assert exc_info.value.message.startswith("العضو 2")
        assert store.writes == []

    def test_duplicate_phone_within_submission(self, store, teammates):
        teammates[2]["phone"] = ALI

        with pytest.raises(ValidationError):
            _register_sara_group(store, teammates)

        assert store.writes == []

    def test_invalid_leader(self, store, teammates):
        with pytest.raises(ValidationError):
            register_group(store, "", SARA, "كلية الهندسة", "software", teammates)

        assert store.writes == []


class TestReadAndDelete:
    """Test listing, counting and deleting registrants."""

    def test_get_registrations_newest_first(self):
        store = FlakyStore({REGISTRATIONS: [make_registrant(1), make_registrant(5), make_registrant(3)]})

        assert [r.id for r in get_registrations(store)] == ["r005", "r003", "r001"]

    def test_get_registrations_failure(self, store):
        store.fail_when("select", REGISTRATIONS)

        with pytest.raises(StoreOperationError):
            get_registrations(store)

    def test_count_includes_synthetic(self, seeded_store):
        assert get_registration_count(seeded_store) == 10

    def test_count_returns_zero_on_store_error(self, store):
        store.count = MagicMock(side_effect=StoreError("down"))

        assert get_registration_count(store) == 0

    def test_delete_student(self, seeded_store):
        delete_student(seeded_store, "r001")

        assert seeded_store.count(REGISTRATIONS, Where().eq("id", "r001")) == 0

    def test_delete_missing_student(self, store):
        with pytest.raises(NotFoundError):
            delete_student(store, "missing")

    def test_delete_all_students(self, seeded_store):
        seeded_store.insert(GROUPS, {"name": "G", "members": ["r001"], "member_count": 1})

        assert delete_all_students(seeded_store) == 10
        assert seeded_store.count(REGISTRATIONS) == 0
        assert seeded_store.count(GROUPS) == 0

    def test_delete_all_students_failure(self, seeded_store):
        seeded_store.fail_when("delete", REGISTRATIONS)

        with pytest.raises(StoreOperationError):
            delete_all_students(seeded_store)


class TestSubscribeToRegistrations:
    """Test subscribe_to_registrations function."""

    def test_callback_fires_on_change(self, store, valid_form):
        callback = MagicMock()
        unsubscribe = subscribe_to_registrations(store, callback)

        register_student(store, valid_form)
        assert callback.call_count == 1

        unsubscribe()
        delete_all_students(store)
        assert callback.call_count == 1

    def test_subscribe_failure_returns_noop(self, store):
        store.subscribe = MagicMock(side_effect=RuntimeError("channel closed"))

        unsubscribe = subscribe_to_registrations(store, MagicMock())

        assert unsubscribe() is None


class TestAddRandomStudent:
    """Test add_random_student function."""

    def test_adds_valid_synthetic_registrant(self, store, rng):
        registrant = add_random_student(store, rng)

        assert registrant.is_dummy is True
        assert registrant.assigned is False
        assert registrant.interest in ("software", "marketing", "other")
        assert validate_phone(registrant.phone)

    def test_retries_with_new_phone_on_conflict(self, store, rng):
        attempted = []

        def conflict_twice(row):
            attempted.append(row["phone"])
            return len(attempted) <= 2

        store.fail_when("insert", REGISTRATIONS, conflict_twice, code=UNIQUE_VIOLATION)

        registrant = add_random_student(store, rng)

        assert len(attempted) == 3
        assert registrant.phone == attempted[-1]
        assert store.count(REGISTRATIONS) == 1

    def test_gives_up_after_max_attempts(self, store, rng):
        store.fail_when("insert", REGISTRATIONS, code=UNIQUE_VIOLATION)

        with pytest.raises(RegistrationFailedError):
            add_random_student(store, rng)

        assert len(store.writes) == MAX_RANDOM_ATTEMPTS
