"""Tests for admin qualification endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.core.identity import Role
from app.services.directory_service import DirectoryService
from tests.conftest import headers_for


def _url(doctor_id, exam_id) -> str:
    return f"/api/v1/admin/doctors/{doctor_id}/exams/{exam_id}"


@pytest.mark.asyncio
async def test_admin_qualifies_doctor(
    client: AsyncClient, db_session, admin_id, unqualified_doctor_id, doctor_ids, exam_id
):
    response = await client.post(
        _url(unqualified_doctor_id, exam_id), headers=headers_for(Role.ADMIN, admin_id)
    )

    assert response.status_code == 201
    assert response.json() == {"doctorId": str(unqualified_doctor_id), "examId": str(exam_id)}
    roster = await DirectoryService(db_session).list_qualified_doctor_ids(exam_id)
    assert roster == [*doctor_ids, unqualified_doctor_id]


@pytest.mark.asyncio
async def test_duplicate_qualification_conflicts(
    client: AsyncClient, admin_id, doctor_ids, exam_id
):
    response = await client.post(
        _url(doctor_ids[0], exam_id), headers=headers_for(Role.ADMIN, admin_id)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_unknown_doctor_or_exam_is_not_found(
    client: AsyncClient, admin_id, doctor_ids, exam_id
):
    headers = headers_for(Role.ADMIN, admin_id)

    response = await client.post(_url(uuid4(), exam_id), headers=headers)
    assert response.status_code == 404

    response = await client.post(_url(doctor_ids[0], uuid4()), headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_removes_qualification(
    client: AsyncClient, db_session, admin_id, doctor_ids, exam_id
):
    headers = headers_for(Role.ADMIN, admin_id)

    response = await client.delete(_url(doctor_ids[0], exam_id), headers=headers)
    assert response.status_code == 204
    roster = await DirectoryService(db_session).list_qualified_doctor_ids(exam_id)
    assert roster == [doctor_ids[1]]

    response = await client.delete(_url(doctor_ids[0], exam_id), headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_non_admins_are_forbidden(
    client: AsyncClient, patient_id, doctor_ids, unqualified_doctor_id, exam_id
):
    url = _url(unqualified_doctor_id, exam_id)

    response = await client.post(url, headers=headers_for(Role.DOCTOR, doctor_ids[0]))
    assert response.status_code == 403

    response = await client.post(url, headers=headers_for(Role.PATIENT, patient_id))
    assert response.status_code == 403

    response = await client.post(url, headers=headers_for(Role.ADMIN, uuid4()))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_doctor_header_is_not_read_as_path_doctor(
    client: AsyncClient, db_session, doctor_ids, unqualified_doctor_id, exam_id
):
    response = await client.post(
        _url(unqualified_doctor_id, exam_id),
        headers={"X-Demo-Doctor-Id": str(doctor_ids[0])},
    )

    assert response.status_code == 403
    roster = await DirectoryService(db_session).list_qualified_doctor_ids(exam_id)
    assert roster == doctor_ids


@pytest.mark.asyncio
async def test_admin_header_with_doctor_path(
    client: AsyncClient, admin_id, doctor_ids, exam_id
):
    response = await client.delete(
        _url(doctor_ids[1], exam_id), headers={"X-Demo-Admin-Id": str(admin_id)}
    )

    assert response.status_code == 204
