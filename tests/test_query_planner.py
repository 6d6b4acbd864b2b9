from datetime import date

import pytest

from clinicflow import crud
from clinicflow.core.errors import ValidationError
from clinicflow.core.query_planner import ListParams, QueryPlanner
from clinicflow.models import MedicalRecord, Patient


@pytest.fixture
def patients(db):
    rows = [
        Patient(
            first_name=f"Pat{i:02d}",
            last_name="Smith" if i % 3 == 0 else "Jones",
            date_of_birth=date(1980, 1, 1 + i % 28),
            gender="female" if i % 2 else "male",
            blood_type="O+" if i < 10 else "A-",
            email=f"pat{i:02d}@example.com",
        )
        for i in range(45)
    ]
    db.add_all(rows)
    db.commit()
    return rows


def test_pagination_metadata_for_last_page(db, patients):
    result = QueryPlanner(db).paginate(crud.patient.list_spec, ListParams(page=3, limit=20))

    assert len(result.items) == 5
    assert result.pagination == {
        "current_page": 3,
        "total_pages": 3,
        "total_count": 45,
        "limit": 20,
        "has_next": False,
        "has_prev": True,
    }


def test_pages_cover_every_row_exactly_once(db, patients):
    planner = QueryPlanner(db)
    first = planner.paginate(crud.patient.list_spec, ListParams(page=1, limit=20))

    seen = []
    for page in range(1, first.total_pages + 1):
        seen.extend(p.id for p in planner.paginate(crud.patient.list_spec, ListParams(page=page, limit=20)).items)

    assert len(seen) == first.total_count
    assert len(set(seen)) == 45


def test_default_limit_and_cap(db, patients):
    planner = QueryPlanner(db, max_limit=30)

    assert planner.paginate(crud.patient.list_spec, ListParams()).limit == 20
    capped = planner.paginate(crud.patient.list_spec, ListParams(limit=500))
    assert capped.limit == 30
    assert len(capped.items) == 30


def test_equality_filters_are_anded(db, patients):
    params = ListParams(limit=100, filters={"gender": "female", "blood_type": "O+"})
    result = QueryPlanner(db).paginate(crud.patient.list_spec, params)

    assert result.total_count == 5
    assert all(p.gender == "female" and p.blood_type == "O+" for p in result.items)


def test_none_filter_values_are_ignored(db, patients):
    result = QueryPlanner(db).paginate(crud.patient.list_spec, ListParams(filters={"gender": None}))
    assert result.total_count == 45


def test_search_is_case_insensitive(db, patients):
    result = QueryPlanner(db).paginate(crud.patient.list_spec, ListParams(limit=100, search="SMITH"))

    assert result.total_count == 15
    assert {p.last_name for p in result.items} == {"Smith"}


def test_search_treats_wildcards_literally(db, patients):
    result = QueryPlanner(db).paginate(crud.patient.list_spec, ListParams(search="%"))
    assert result.total_count == 0


def test_sort_by_field_and_order(db, patients):
    params = ListParams(limit=5, sort_by="first_name", sort_order="asc")
    result = QueryPlanner(db).paginate(crud.patient.list_spec, params)

    assert [p.first_name for p in result.items] == ["Pat00", "Pat01", "Pat02", "Pat03", "Pat04"]


def test_empty_result_has_no_pages(db):
    result = QueryPlanner(db).paginate(crud.patient.list_spec, ListParams())

    assert result.items == []
    assert result.pagination["total_pages"] == 0
    assert result.pagination["has_next"] is False


@pytest.mark.parametrize(
    "params, message",
    [
        (ListParams(page=0), "page"),
        (ListParams(limit=0), "limit"),
        (ListParams(filters={"favourite_colour": "red"}), "Unknown filter"),
        (ListParams(sort_by="hashed_password"), "Cannot sort"),
        (ListParams(sort_order="sideways"), "sort_order"),
    ],
)
def test_invalid_params_fail_before_touching_the_database(params, message):
    # A planner without a session proves validation happens first
    planner = QueryPlanner(db=None)

    with pytest.raises(ValidationError, match=message):
        planner.paginate(crud.patient.list_spec, params)


def test_unknown_filter_lists_allowed_filters():
    with pytest.raises(ValidationError) as exc_info:
        QueryPlanner(db=None).plan(crud.patient.list_spec, ListParams(filters={"nope": 1}))

    assert exc_info.value.details["allowed_filters"] == ["blood_type", "gender", "is_active"]


def test_range_filters(db, doctor_user, patient_user):
    for day in (1, 10, 20):
        db.add(MedicalRecord(
            patient_id=patient_user.id,
            doctor_id=doctor_user.id,
            visit_date=date(2024, 3, day),
            chief_complaint="Headache",
        ))
    db.commit()

    params = ListParams(filters={"start_date": date(2024, 3, 5), "end_date": date(2024, 3, 20)})
    result = QueryPlanner(db).paginate(crud.medical_record.list_spec, params)

    assert [r.visit_date.day for r in result.items] == [20, 10]
