"""
Tests for the admin listing (pagination, e-mail filter, sorting) and detail view.
"""
import pytest

from app.admin.schemas import AdminListQuery, Pagination, SortField, SortOrder
from app.simulation.schemas import SimulationRequest
from app.simulation.service import create_simulation, list_simulations


def add_simulation(db, email: str, purchase_price: float = 150000, monthly_rent: float = 1200):
    data = SimulationRequest(purchase_price=purchase_price, monthly_rent=monthly_rent, annual_fee=900, email=email)
    return create_simulation(db, data, "test-correlation")


@pytest.mark.parametrize("page, has_next, has_prev", [
    (1, True, False),
    (2, True, True),
    (3, False, True),
])
def test_pagination_metadata(page: int, has_next: bool, has_prev: bool):
    pagination = Pagination.build(page=page, limit=20, total=45)

    assert pagination.total_pages == 3
    assert pagination.has_next is has_next
    assert pagination.has_prev is has_prev


def test_pagination_empty():
    pagination = Pagination.build(page=1, limit=20, total=0)

    assert pagination.total_pages == 0
    assert pagination.has_next is False
    assert pagination.has_prev is False


@pytest.mark.parametrize("params", [
    {"page": "0"},
    {"page": "abc"},
    {"limit": "0"},
    {"limit": "1000"},
    {"sort_by": "password"},
    {"sort_order": "sideways"},
    {"email": "x" * 300},
])
def test_invalid_query_rejected(params):
    with pytest.raises(ValueError):
        AdminListQuery(**params)


def test_query_defaults():
    query = AdminListQuery(email="   ")

    assert query.page == 1
    assert query.limit == 20
    assert query.skip == 0
    assert query.email is None
    assert query.sort_by == SortField.CREATED_AT
    assert query.sort_order == SortOrder.DESC


def test_list_simulations_paginates(db_session):
    for i in range(25):
        add_simulation(db_session, f"user{i:02d}@example.com")

    page, total = list_simulations(db_session, AdminListQuery(page=3, limit=10))

    assert total == 25
    assert len(page) == 5


def test_list_simulations_filters_email_case_insensitively(db_session):
    add_simulation(db_session, "alice@example.com")
    add_simulation(db_session, "bob@example.com")
    add_simulation(db_session, "malice@corp.io")

    rows, total = list_simulations(db_session, AdminListQuery(email="ALICE"))

    assert total == 2
    assert {r.email for r in rows} == {"alice@example.com", "malice@corp.io"}


def test_email_filter_treats_wildcards_literally(db_session):
    add_simulation(db_session, "alice@example.com")

    rows, total = list_simulations(db_session, AdminListQuery(email="%"))

    assert total == 0


def test_list_simulations_sorts(db_session):
    add_simulation(db_session, "mid@example.com", purchase_price=200000)
    add_simulation(db_session, "low@example.com", purchase_price=100000)
    add_simulation(db_session, "high@example.com", purchase_price=300000)

    rows, _ = list_simulations(db_session, AdminListQuery(sort_by="purchase_price", sort_order="asc"))
    assert [r.email for r in rows] == ["low@example.com", "mid@example.com", "high@example.com"]

    rows, _ = list_simulations(db_session, AdminListQuery(sort_by="email", sort_order="desc"))
    assert [r.email for r in rows] == ["mid@example.com", "low@example.com", "high@example.com"]


def test_admin_listing_page(client, db_session):
    for i in range(3):
        add_simulation(db_session, f"owner{i}@example.com")

    response = client.get("/admin/simulations", params={"limit": 2})

    assert response.status_code == 200
    assert response.text.count("Details</a>") == 2
    assert "Page 1 of 2" in response.text
    assert "Next</a>" in response.text
    assert "3 simulation(s)" in response.text


def test_admin_listing_filter(client, db_session):
    add_simulation(db_session, "alice@example.com")
    add_simulation(db_session, "bob@example.com")

    response = client.get("/admin/simulations", params={"email": "bob"})

    assert response.status_code == 200
    assert "bob@example.com" in response.text
    assert "alice@example.com" not in response.text


def test_admin_listing_invalid_parameters(client, db_session):
    response = client.get("/admin/simulations", params={"page": "0"})

    assert response.status_code == 400
    assert "Invalid pagination, filter or sort parameters" in response.text
    assert "No simulations found." in response.text


def test_admin_detail(client, db_session):
    simulation = add_simulation(db_session, "detail@example.com", purchase_price=200000, monthly_rent=1500)

    response = client.get(f"/admin/simulations/{simulation.id}")

    assert response.status_code == 200
    assert "detail@example.com" in response.text
    assert "test-correlation" in response.text
    assert 'id="baseline"' in response.text
    assert 'id="predictions"' in response.text


def test_admin_detail_unknown(client, db_session):
    response = client.get("/admin/simulations/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
