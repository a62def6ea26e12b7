from .conftest import PASSWORD, WEEK_SLOTS, auth_headers, create_doctor, iso, next_local

class TestDoctors:

    def test_admin_creates_doctor_with_availability(self, client, admin_headers):
        doctor = create_doctor(client, admin_headers)
        assert doctor["department"] == "Diagnostics"
        assert doctor["availability"] == WEEK_SLOTS
        assert doctor["user"]["email"] == "house@example.com"

        # The doctor can log in with the onboarding password
        me = client.get("/api/v1/auth/me", headers=auth_headers(client, "house@example.com"))
        assert me.json()["role"] == "doctor"

    def test_only_admin_creates_doctors(self, client, patient_headers):
        response = client.post("/api/v1/doctors", headers=patient_headers, json={
            "name": "Dr. Nobody", "email": "nobody@example.com", "password": "Password123",
            "phone": "1", "department": "X", "license_number": "L-9",
        })
        assert response.status_code == 403

    def test_duplicate_license_rejected(self, client, admin_headers, doctor):
        response = client.post("/api/v1/doctors", headers=admin_headers, json={
            "name": "Dr. Copy", "email": "copy@example.com", "password": "Password123",
            "phone": "1", "department": "X", "license_number": "LIC-001",
        })
        assert response.status_code == 400

    def test_invalid_slot_rejected(self, client, admin_headers):
        for slot in (
            {"day": "Funday", "start_time": "09:00", "end_time": "17:00"},
            {"day": "Monday", "start_time": "9am", "end_time": "17:00"},
            {"day": "Monday", "start_time": "09:00", "end_time": "09:00"},
        ):
            response = client.post("/api/v1/doctors", headers=admin_headers, json={
                "name": "Dr. Bad", "email": "bad@example.com", "password": "Password123",
                "phone": "1", "department": "X", "license_number": "L-BAD",
                "availability": [slot],
            })
            assert response.status_code == 422

    def test_list_and_get(self, client, doctor, patient_headers):
        listing = client.get("/api/v1/doctors", headers=patient_headers)
        assert [d["id"] for d in listing.json()] == [doctor["id"]]

        response = client.get(f"/api/v1/doctors/{doctor['id']}", headers=patient_headers)
        assert response.json()["license_number"] == "LIC-001"

        response = client.get("/api/v1/doctors/999", headers=patient_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Doctor not found"

    def test_current_doctor(self, client, doctor, doctor_headers, patient_headers):
        response = client.get("/api/v1/doctors/current", headers=doctor_headers)
        assert response.json()["id"] == doctor["id"]

        response = client.get("/api/v1/doctors/current", headers=patient_headers)
        assert response.status_code == 403

    def test_doctor_replaces_own_availability(self, client, doctor, doctor_headers):
        new_slots = [
            {"day": "Tuesday", "start_time": "10:00", "end_time": "12:00"},
            {"day": "Tuesday", "start_time": "13:00", "end_time": "15:00"},
        ]
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}", headers=doctor_headers,
            json={"availability": new_slots}
        )
        assert response.status_code == 200
        assert response.json()["availability"] == new_slots
        assert response.json()["department"] == "Diagnostics"

    def test_other_doctor_cannot_update(self, client, admin_headers, doctor):
        create_doctor(client, admin_headers, email="wilson@example.com", license_number="LIC-002")
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            headers=auth_headers(client, "wilson@example.com"),
            json={"department": "Oncology"}
        )
        assert response.status_code == 403

    def test_admin_updates_doctor(self, client, admin_headers, doctor):
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}", headers=admin_headers,
            json={"department": "Nephrology"}
        )
        assert response.json()["department"] == "Nephrology"
        assert response.json()["availability"] == WEEK_SLOTS

    def test_admin_removes_doctor_and_account(self, client, admin_headers, doctor):
        url = f"/api/v1/doctors/{doctor['id']}"
        response = client.delete(url, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {
            "success": True, "message": "Doctor removed", "doctor_id": doctor["id"]
        }

        assert client.get(url, headers=admin_headers).status_code == 404
        response = client.post("/api/v1/auth/login", json={
            "email": "house@example.com", "password": PASSWORD
        })
        assert response.status_code == 401

    def test_doctor_with_appointments_is_kept(self, client, admin_headers, doctor, patient_headers):
        client.post("/api/v1/appointments", headers=patient_headers, json={
            "doctor_id": doctor["id"], "date": iso(next_local("Monday", "10:00")),
            "reason": "Consultation",
        })
        url = f"/api/v1/doctors/{doctor['id']}"
        response = client.delete(url, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Doctor has appointments and cannot be removed"
        assert client.get(url, headers=admin_headers).status_code == 200

    def test_only_admin_removes_doctors(self, client, doctor, doctor_headers):
        response = client.delete(f"/api/v1/doctors/{doctor['id']}", headers=doctor_headers)
        assert response.status_code == 403

    def test_remove_unknown_doctor(self, client, admin_headers):
        assert client.delete("/api/v1/doctors/999", headers=admin_headers).status_code == 404

class TestPatients:

    profile = {"date_of_birth": "1990-05-17", "gender": "female", "phone": "+15550002"}

    def test_create_own_profile(self, client, patient_headers):
        response = client.post("/api/v1/patients", headers=patient_headers, json=self.profile)
        assert response.status_code == 201
        data = response.json()
        assert data["is_profile_complete"] is True
        assert data["user"]["email"] == "patient@example.com"

        response = client.post("/api/v1/patients", headers=patient_headers, json=self.profile)
        assert response.status_code == 400
        assert response.json()["error"] == "Patient profile already exists"

    def test_create_requires_birth_date_and_gender(self, client, patient_headers):
        response = client.post("/api/v1/patients", headers=patient_headers, json={"phone": "1"})
        assert response.status_code == 422

    def test_current_patient_not_found(self, client, patient_headers):
        response = client.get("/api/v1/patients/current", headers=patient_headers)
        assert response.status_code == 404

    def test_list_is_admin_only(self, client, admin_headers, patient_headers):
        client.post("/api/v1/patients", headers=patient_headers, json=self.profile)
        assert client.get("/api/v1/patients", headers=patient_headers).status_code == 403
        assert len(client.get("/api/v1/patients", headers=admin_headers).json()) == 1

    def test_visibility(self, client, patient_headers, other_patient_headers, doctor_headers):
        patient = client.post(
            "/api/v1/patients", headers=patient_headers, json=self.profile
        ).json()
        url = f"/api/v1/patients/{patient['id']}"

        assert client.get(url, headers=patient_headers).status_code == 200
        assert client.get(url, headers=other_patient_headers).status_code == 403
        # A doctor without an appointment with this patient cannot see them
        assert client.get(url, headers=doctor_headers).status_code == 403

    def test_doctor_sees_booked_patient(self, client, doctor, patient_headers, doctor_headers):
        client.post("/api/v1/appointments", headers=patient_headers, json={
            "doctor_id": doctor["id"], "date": iso(next_local("Monday", "10:00")),
            "reason": "Consultation",
        })
        patient = client.get("/api/v1/patients/current", headers=patient_headers).json()

        response = client.get(f"/api/v1/patients/{patient['id']}", headers=doctor_headers)
        assert response.status_code == 200

    def test_booking_creates_incomplete_profile_then_completion(self, client, doctor, patient_headers):
        response = client.post("/api/v1/appointments", headers=patient_headers, json={
            "doctor_id": doctor["id"], "date": iso(next_local("Monday", "10:00")),
            "reason": "Consultation",
        })
        assert response.status_code == 201

        patient = client.get("/api/v1/patients/current", headers=patient_headers).json()
        assert patient["is_profile_complete"] is False
        assert patient["gender"] is None
        assert patient["phone"] is None
        assert patient["date_of_birth"] is None

        url = f"/api/v1/patients/{patient['id']}"
        partial = client.put(url, headers=patient_headers, json={"gender": "male"}).json()
        assert partial["is_profile_complete"] is False

        done = client.put(url, headers=patient_headers, json={"date_of_birth": "1985-01-02"}).json()
        assert done["is_profile_complete"] is True
        assert done["gender"] == "male"

    def test_update_requires_owner_or_admin(self, client, admin_headers, patient_headers,
                                            other_patient_headers):
        patient = client.post(
            "/api/v1/patients", headers=patient_headers, json=self.profile
        ).json()
        url = f"/api/v1/patients/{patient['id']}"

        response = client.put(url, headers=other_patient_headers, json={"address": "Elsewhere"})
        assert response.status_code == 403

        response = client.put(url, headers=admin_headers, json={"address": "221B Baker St"})
        assert response.json()["address"] == "221B Baker St"

    def test_admin_removes_profile_and_keeps_account(self, client, admin_headers, patient_headers):
        patient = client.post(
            "/api/v1/patients", headers=patient_headers, json=self.profile
        ).json()

        response = client.delete(f"/api/v1/patients/{patient['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Patient profile deleted"
        assert response.json()["patient_id"] == patient["id"]

        assert client.get("/api/v1/patients/current", headers=patient_headers).status_code == 404
        assert client.get("/api/v1/auth/me", headers=patient_headers).status_code == 200

    def test_patient_with_appointments_is_kept(self, client, admin_headers, doctor, patient_headers):
        client.post("/api/v1/appointments", headers=patient_headers, json={
            "doctor_id": doctor["id"], "date": iso(next_local("Monday", "10:00")),
            "reason": "Consultation",
        })
        patient = client.get("/api/v1/patients/current", headers=patient_headers).json()

        response = client.delete(f"/api/v1/patients/{patient['id']}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Patient has appointments and cannot be removed"

    def test_only_admin_removes_patients(self, client, admin_headers, patient_headers):
        patient = client.post(
            "/api/v1/patients", headers=patient_headers, json=self.profile
        ).json()
        url = f"/api/v1/patients/{patient['id']}"
        assert client.delete(url, headers=patient_headers).status_code == 403
        assert client.delete("/api/v1/patients/999", headers=admin_headers).status_code == 404
