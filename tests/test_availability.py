"""
Weekly availability: wholesale replacement and listing.
"""
from datetime import time

import pytest

from app.core.error_handling import ValidationFailed
from app.models.availability import Availability
from app.services import availability_service

from conftest import auth


class TestReplaceSchedule:

    def test_inserts_windows_per_weekday(self, db_session, professional):
        windows = availability_service.replace_schedule(db_session, professional.id, {
            "lunes": [{"inicio": "08:00", "fin": "12:00"}, {"inicio": "14:00", "fin": "18:00"}],
            "miércoles": [{"inicio": "09:00", "fin": "13:00"}],
        })

        assert len(windows) == 3
        stored = availability_service.list_windows(db_session, professional.id)
        assert [(w.weekday, w.start_time) for w in stored] == [
            (0, time(8)),
            (0, time(14)),
            (2, time(9)),
        ]

    def test_replaces_previous_schedule(self, db_session, professional):
        availability_service.replace_schedule(db_session, professional.id, {
            "lunes": [{"inicio": "08:00", "fin": "12:00"}],
        })
        availability_service.replace_schedule(db_session, professional.id, {
            "viernes": [{"inicio": "10:00", "fin": "11:00"}],
        })

        stored = availability_service.list_windows(db_session, professional.id)
        assert [(w.weekday, w.start_time, w.end_time) for w in stored] == [(4, time(10), time(11))]

    def test_days_without_intervals_are_skipped(self, db_session, professional):
        windows = availability_service.replace_schedule(db_session, professional.id, {
            "lunes": [{"inicio": "08:00", "fin": "12:00"}],
            "martes": [],
            "sabado": None,
        })
        assert len(windows) == 1

    @pytest.mark.parametrize("horarios", [
        {},
        {"lunes": []},
        {"feriado": [{"inicio": "08:00", "fin": "12:00"}]},
        {"lunes": [{"inicio": "12:00", "fin": "08:00"}]},
        {"lunes": [{"inicio": "08:00"}]},
        {"lunes": [{"inicio": "ocho", "fin": "12:00"}]},
    ])
    def test_invalid_payloads(self, db_session, professional, horarios):
        with pytest.raises(ValidationFailed):
            availability_service.replace_schedule(db_session, professional.id, horarios)

    def test_invalid_payload_keeps_old_schedule(self, db_session, professional):
        availability_service.replace_schedule(db_session, professional.id, {
            "lunes": [{"inicio": "08:00", "fin": "12:00"}],
        })

        with pytest.raises(ValidationFailed):
            availability_service.replace_schedule(db_session, professional.id, {
                "martes": [{"inicio": "18:00", "fin": "10:00"}],
            })

        assert db_session.query(Availability).count() == 1


class TestAvailabilityApi:

    def test_set_and_read_back(self, client, patient, professional):
        response = client.post(
            "/establecerDisponibilidadProfesional",
            json={"horarios": {"lunes": [{"inicio": "08:00", "fin": "12:00"}]}},
            headers=auth(professional),
        )
        assert response.status_code == 201

        listed = client.get(
            "/verDisponibilidad",
            params={"emailProfesional": professional.email},
            headers=auth(patient),
        )
        assert listed.status_code == 200
        horarios = listed.json()["result"]
        assert horarios["lunes"] == [{"inicio": "08:00", "fin": "12:00"}]
        assert horarios["martes"] == []

    def test_empty_schedule_is_400(self, client, professional):
        response = client.post(
            "/establecerDisponibilidadProfesional",
            json={"horarios": {}},
            headers=auth(professional),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_patients_cannot_set_availability(self, client, patient):
        response = client.post(
            "/establecerDisponibilidadProfesional",
            json={"horarios": {"lunes": [{"inicio": "08:00", "fin": "12:00"}]}},
            headers=auth(patient),
        )
        assert response.status_code == 403

    def test_unknown_professional(self, client, patient):
        response = client.get(
            "/verDisponibilidad",
            params={"emailProfesional": "nadie@test.com"},
            headers=auth(patient),
        )
        assert response.status_code == 404
