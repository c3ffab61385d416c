import tempfile
import threading
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from clinic.main import create_app
from clinic.models.consultation import ConsultationIn
from clinic.services.file_sink import LocalFileSink
from clinic.services.memory_store import MemoryRecordStore


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        root = Path(self._tmp.name)

        self.store = MemoryRecordStore()
        self.upload_dir = root / "uploads"
        self.pdf_dir = root / "pdfs"
        app = create_app(
            store=self.store,
            upload_sink=LocalFileSink(self.upload_dir, "/uploads"),
            pdf_sink=LocalFileSink(self.pdf_dir, "/pdfs"),
        )
        self.client = TestClient(app)

    def signup_doctor(self, **overrides):
        body = {
            "name": "Grey",
            "specialty": "Surgery",
            "email": "grey@clinic.org",
            "phone": "5550001",
            "experience": 12,
            **overrides,
        }
        return self.client.post("/doctor/signup", json=body)

    def signup_patient(self, files=None, **overrides):
        form = {
            "name": "Alice",
            "age": "34",
            "email": "alice@example.com",
            "phone": "5551234",
            "surgeryHistory": "appendix",
            "illnessHistory": "asthma, flu ,",
            **overrides,
        }
        form = {k: v for k, v in form.items() if v is not None}
        return self.client.post("/patient/signup", data=form, files=files)

    def pdf_files(self):
        return list(self.pdf_dir.iterdir()) if self.pdf_dir.exists() else []


class TestAppShell(ApiTestCase):
    def test_root_and_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})
        self.assertEqual(self.client.get("/").status_code, 200)

    def test_missing_static_file_is_404(self):
        self.assertEqual(self.client.get("/uploads/nothing.png").status_code, 404)
        self.assertEqual(self.client.get("/pdfs/nothing.pdf").status_code, 404)

    def test_static_dirs_exist_before_first_write(self):
        self.assertTrue(self.upload_dir.is_dir())
        self.assertTrue(self.pdf_dir.is_dir())


class SlowDoctorStore(MemoryRecordStore):
    """list_doctors blocks until released, like a stalled Firestore call."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.timed_out = False

    def list_doctors(self):
        self.entered.set()
        self.timed_out = not self.release.wait(5)
        return super().list_doctors()


class TestBlockingStoreCalls(unittest.TestCase):
    def test_slow_store_call_does_not_stall_other_requests(self):
        store = SlowDoctorStore()
        with tempfile.TemporaryDirectory() as tmp:
            app = create_app(
                store=store,
                upload_sink=LocalFileSink(Path(tmp) / "uploads", "/uploads"),
                pdf_sink=LocalFileSink(Path(tmp) / "pdfs", "/pdfs"),
            )
            with TestClient(app) as client:
                results = {}
                worker = threading.Thread(
                    target=lambda: results.setdefault("doctors", client.get("/doctors"))
                )
                worker.start()
                self.assertTrue(store.entered.wait(5))

                health = client.get("/health")
                store.release.set()
                worker.join(10)

        self.assertEqual(health.status_code, 200)
        self.assertFalse(store.timed_out)
        self.assertEqual(results["doctors"].json(), [])


class TestDoctorRoutes(ApiTestCase):
    def test_signup_returns_doctor(self):
        resp = self.signup_doctor()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["id"])
        self.assertEqual(body["name"], "Grey")
        self.assertEqual(body["experience"], 12)

    def test_duplicate_signup_is_a_store_error(self):
        self.signup_doctor()
        resp = self.signup_doctor(name="Copy", phone="5550002")
        self.assertEqual(resp.status_code, 500)
        self.assertIn("already registered", resp.json()["error"])
        self.assertEqual(len(self.store.doctors), 1)

    def test_invalid_experience_is_400(self):
        resp = self.signup_doctor(experience="lots")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("experience", resp.json()["error"])

    def test_numeric_phone_is_stored_as_string(self):
        resp = self.signup_doctor(phone=5550009)
        self.assertEqual(resp.json()["phone"], "5550009")

    def test_login_returns_doctor_or_null(self):
        doctor_id = self.signup_doctor().json()["id"]

        resp = self.client.post("/doctor/login", json={"email": "grey@clinic.org"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], doctor_id)

        resp = self.client.post("/doctor/login", json={"email": "nobody@clinic.org"})
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json())

    def test_login_does_not_normalize_email(self):
        self.signup_doctor()
        resp = self.client.post("/doctor/login", json={"email": " GREY@clinic.org"})
        self.assertIsNone(resp.json())

    def test_list_doctors_in_signup_order(self):
        self.signup_doctor()
        self.signup_doctor(name="Shepherd", email="s@clinic.org", phone="5550003")
        names = [d["name"] for d in self.client.get("/doctors").json()]
        self.assertEqual(names, ["Grey", "Shepherd"])


class TestPatientRoutes(ApiTestCase):
    def test_signup_normalizes_and_splits(self):
        resp = self.signup_patient(email="  Alice@Example.COM ")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["email"], "alice@example.com")
        self.assertEqual(body["age"], 34)
        self.assertEqual(body["illnessHistory"], ["asthma", "flu", ""])
        self.assertEqual(body["profileImage"], "")

    def test_signup_without_illness_history(self):
        body = self.signup_patient(illnessHistory=None).json()
        self.assertEqual(body["illnessHistory"], [])

    def test_signup_stores_profile_image(self):
        files = {"profileImage": ("face.png", b"\x89PNG fake", "image/png")}
        resp = self.signup_patient(files=files)
        self.assertEqual(resp.status_code, 200)

        path = resp.json()["profileImage"]
        self.assertTrue(path.startswith("/uploads/"))
        self.assertTrue(path.endswith("-face.png"))
        self.assertEqual(self.client.get(path).content, b"\x89PNG fake")

    def test_missing_required_fields(self):
        for field in ("name", "email", "phone"):
            resp = self.signup_patient(**{field: None})
            self.assertEqual(resp.status_code, 400, field)
            self.assertEqual(resp.json(), {"error": "Missing required fields"})

        resp = self.signup_patient(email="   ")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.store.patients, {})

    def test_non_integer_age(self):
        resp = self.signup_patient(age="old")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.store.patients, {})

    def test_duplicate_email_or_phone(self):
        self.assertEqual(self.signup_patient().status_code, 200)

        resp = self.signup_patient(email="ALICE@example.com", phone="999")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json(), {"error": "Email or phone already registered"})

        resp = self.signup_patient(email="other@example.com")
        self.assertEqual(resp.status_code, 409)

        self.assertEqual(len(self.store.patients), 1)

    def test_rejected_signup_stores_no_image(self):
        self.signup_patient()
        files = {"profileImage": ("face.png", b"img", "image/png")}
        self.signup_patient(files=files, email="other@example.com")
        self.assertFalse(self.upload_dir.exists() and any(self.upload_dir.iterdir()))

    def test_login(self):
        patient_id = self.signup_patient().json()["id"]

        resp = self.client.post(
            "/patient/login", json={"email": " ALICE@example.com ", "phone": "5551234"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], patient_id)

    def test_login_with_wrong_phone(self):
        self.signup_patient()
        resp = self.client.post(
            "/patient/login", json={"email": "alice@example.com", "phone": "0000"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Invalid credentials"})


class TestConsultationRoutes(ApiTestCase):
    def test_create_and_list_for_doctor(self):
        resp = self.client.post(
            "/consultation",
            json={
                "doctorId": "d1",
                "patientName": "Alice",
                "diabeticStatus": "no",
                "transactionId": "tx-1",
            },
        )
        self.assertEqual(resp.status_code, 200)
        created = resp.json()
        self.assertTrue(created["id"])
        self.assertIsNotNone(created["createdAt"])

        self.client.post("/consultation", json={"doctorId": "d2", "patientName": "Bob"})

        items = self.client.get("/doctor/consultations/d1").json()
        self.assertEqual([c["id"] for c in items], [created["id"]])
        self.assertEqual(self.client.get("/doctor/consultations/unknown").json(), [])


class TestPrescriptionRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        doctor_id = self.signup_doctor().json()["id"]
        self.consultation_id = self.client.post(
            "/consultation", json={"doctorId": doctor_id, "patientName": "Alice"}
        ).json()["id"]

    def prescribe(self, consultation_id=None, **body):
        return self.client.post(f"/prescription/{consultation_id or self.consultation_id}", json=body)

    def test_creates_pdf_and_row(self):
        resp = self.prescribe(care="Rest for two days", medicine="Ibuprofen")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["pdfUrl"].startswith(f"/pdfs/prescription_{self.consultation_id}_"))

        pdf = self.client.get(body["pdfUrl"])
        self.assertEqual(pdf.status_code, 200)
        self.assertTrue(pdf.content.startswith(b"%PDF"))

        row = self.store.prescriptions[self.consultation_id]
        self.assertEqual(row.pdfPath, body["pdfUrl"])
        self.assertEqual(row.medicine, "Ibuprofen")

    def test_second_prescription_replaces_row_but_not_file(self):
        first = self.prescribe(care="Rest", medicine="A").json()
        second = self.prescribe(care="Walk daily").json()

        self.assertNotEqual(first["pdfUrl"], second["pdfUrl"])
        self.assertEqual(len(self.store.prescriptions), 1)
        row = self.store.prescriptions[self.consultation_id]
        self.assertEqual(row.care, "Walk daily")
        self.assertEqual(row.medicine, "")
        self.assertEqual(row.pdfPath, second["pdfUrl"])
        self.assertEqual(len(self.pdf_files()), 2)

    def test_blank_care_is_rejected(self):
        self.prescribe(care="Rest")

        for care in (None, "", "   \n"):
            resp = self.prescribe(care=care, medicine="X")
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json(), {"error": "Care is required"})

        self.assertEqual(self.store.prescriptions[self.consultation_id].care, "Rest")
        self.assertEqual(len(self.pdf_files()), 1)

    def test_unknown_consultation(self):
        resp = self.prescribe(consultation_id="does-not-exist", care="Rest")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Consultation not found"})
        self.assertEqual(self.pdf_files(), [])
        self.assertEqual(self.store.prescriptions, {})

    def test_unknown_doctor_still_renders(self):
        orphan = self.client.post("/consultation", json={"doctorId": "gone"}).json()["id"]
        resp = self.prescribe(consultation_id=orphan, care="Rest")
        self.assertEqual(resp.status_code, 200)


class TestPatientPrescriptions(ApiTestCase):
    def test_only_prescriptions_for_matched_consultations(self):
        c1 = self.store.create_consultation(ConsultationIn(doctorId="d1", patientId="P"))
        self.store.create_consultation(ConsultationIn(doctorId="d1", patientId="P"))
        c3 = self.store.create_consultation(ConsultationIn(doctorId="d1", patientId="Q"))

        self.client.post(f"/prescription/{c1.id}", json={"care": "Rest"})
        self.client.post(f"/prescription/{c3.id}", json={"care": "Walk"})

        items = self.client.get("/patient/prescriptions/P").json()
        self.assertEqual([p["consultationId"] for p in items], [c1.id])
        self.assertEqual(items[0]["care"], "Rest")

    def test_unknown_patient_key(self):
        self.assertEqual(self.client.get("/patient/prescriptions/nobody").json(), [])


if __name__ == '__main__':
    unittest.main()
