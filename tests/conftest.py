from __future__ import annotations

import datetime
import io
import sys
from pathlib import Path

import pytest
from werkzeug.datastructures import FileStorage

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from supabase_client import SupabaseError  # noqa: E402


DEADLINE = datetime.datetime(2025, 7, 11, 12, 0, 0)
BEFORE_DEADLINE = datetime.datetime(2025, 7, 1, 9, 30, 0)


def make_file(filename: str, data: bytes = b"%PDF-1.4 test", content_type: str = "application/pdf") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def valid_record() -> dict:
    return {
        "full_name": "Maria da Silva",
        "sex": "mulher",
        "license_number": "12.345.678-9",
        "professional_category": "enfermeiro",
        "marital_status": "solteiro",
        "bank": "Banco do Brasil",
        "branch": "1234",
        "account": "56789",
        "check_digit": "0",
        "payment_key_type": "cpf",
        "payment_key": "123.456.789-01",
        "street": "Rua das Flores",
        "street_number": "100",
        "neighborhood": "Centro",
        "city": "Manaus",
        "complement": "",
        "postal_code": "69000-000",
        "email": "maria@example.com",
        "phone": "(92) 9 8765-4321",
        "phone_secondary": "",
        "consent": True,
        "nada_consta": make_file("nada_consta.pdf"),
        "residence_proof": make_file("comprovante.pdf"),
        "marital_attachment": None,
        "vaccination_booklet": make_file("caderneta.jpg", content_type="image/jpeg"),
        "military_certificate": None,
        "photo": make_file("foto.png", content_type="image/png"),
    }


@pytest.fixture
def record() -> dict:
    return valid_record()


class FakeStore:
    """
    In-memory stand-in for SupabaseClient. Every call is appended to
    ``calls`` as (method, args...) so tests can assert on order and scope.
    """

    def __init__(self, record_id=7, insert_error=None, insert_row=None, fail_upload_at=None,
                 upload_error=None, update_error=None, delete_objects_error=None, delete_record_error=None):
        self.record_id = record_id
        self.insert_error = insert_error
        self.insert_row = insert_row
        self.fail_upload_at = fail_upload_at  # 1-based index of the failing upload
        self.upload_error = upload_error  # raised by the failing upload instead of a 409
        self.update_error = update_error
        self.delete_objects_error = delete_objects_error
        self.delete_record_error = delete_record_error
        self.calls = []
        self.uploads = 0

    def insert(self, row):
        self.calls.append(("insert", row))
        if self.insert_error:
            raise self.insert_error
        if self.insert_row is not None:
            return self.insert_row
        return {"id": self.record_id}

    def upload_object(self, bucket, path, fileobj, content_type=None, cache_control="3600", upsert=False):
        self.uploads += 1
        self.calls.append(("upload_object", bucket, path, cache_control, upsert))
        if self.fail_upload_at == self.uploads:
            if self.upload_error:
                raise self.upload_error
            raise SupabaseError("The resource already exists", status_code=409)
        return path

    def update(self, record_id, fields):
        self.calls.append(("update", record_id, dict(fields)))
        if self.update_error:
            raise self.update_error

    def delete_objects(self, bucket, paths):
        self.calls.append(("delete_objects", bucket, list(paths)))
        if self.delete_objects_error:
            raise self.delete_objects_error

    def delete_record(self, record_id):
        self.calls.append(("delete_record", record_id))
        if self.delete_record_error:
            raise self.delete_record_error

    def methods(self):
        return [c[0] for c in self.calls]

    def calls_to(self, method):
        return [c for c in self.calls if c[0] == method]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def sequential_names():
    counter = iter(range(1, 1000))
    return lambda: f"file{next(counter)}"
