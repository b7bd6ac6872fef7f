import io

import pytest

import app as app_module
from conftest import BEFORE_DEADLINE, DEADLINE, FakeStore, sequential_names
from submission import SubmissionCoordinator


FORM = {
    "full_name": "Maria da Silva",
    "sex": "mulher",
    "license_number": "123456789",
    "professional_category": "enfermeiro",
    "marital_status": "solteiro",
    "bank": "Banco do Brasil",
    "branch": "1234",
    "account": "56789",
    "check_digit": "0",
    "payment_key_type": "cpf",
    "payment_key": "12345678901",
    "street": "Rua das Flores",
    "street_number": "100",
    "neighborhood": "Centro",
    "city": "Manaus",
    "postal_code": "69000000",
    "email": "maria@example.com",
    "phone": "92987654321",
    "consent": "on",
}


def with_files(data):
    out = dict(data)
    for fid, name in (("nada_consta", "nc.pdf"), ("residence_proof", "res.pdf"),
                      ("vaccination_booklet", "vac.pdf"), ("photo", "foto.jpg")):
        out[fid] = (io.BytesIO(b"data"), name)
    return out


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore(record_id=11)
    monkeypatch.setattr(app_module, "now", lambda: BEFORE_DEADLINE)
    monkeypatch.setattr(app_module.config, "SUBMISSION_DEADLINE", DEADLINE)
    monkeypatch.setattr(
        app_module, "get_coordinator",
        lambda: SubmissionCoordinator(fake, "solicitacoes-files", DEADLINE,
                                      clock=lambda: BEFORE_DEADLINE, name_factory=sequential_names()),
    )
    return fake


@pytest.fixture
def client():
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


def test_get_renders_empty_form(client, store):
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Cadastro de Profissionais de Enfermagem" in body
    assert "10d 2h 30m 0s" in body


def test_post_success_stores_masked_values_and_resets_form(client, store):
    resp = client.post("/", data=with_files(FORM), content_type="multipart/form-data")

    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Formulário enviado com sucesso!" in body
    assert 'value="Maria da Silva"' not in body

    row = store.calls_to("insert")[0][1]
    assert row["conselho"] == "12.345.678-9"
    assert row["cep"] == "69000-000"
    assert row["celular"] == "(92) 9 8765-4321"
    assert row["pix"] == "123.456.789-01"
    assert row["termo_privacidade"] is True
    assert len(store.calls_to("upload_object")) == 4
    assert store.calls_to("upload_object")[3][2] == "fotos-perfil/11/file4.jpg"


def test_post_with_errors_keeps_draft_and_shows_inline_errors(client, store):
    data = with_files(FORM)
    data["email"] = "maria@"
    del data["photo"]

    resp = client.post("/", data=data, content_type="multipart/form-data")

    assert resp.status_code == 400
    body = resp.get_data(as_text=True)
    assert "Formato de email inválido." in body
    assert "Foto é obrigatória." in body
    assert "Por favor, corrija os erros no formulário antes de enviar." in body
    assert 'value="Maria da Silva"' in body
    assert store.calls == []


def test_post_upload_failure_reports_original_message(client, store):
    store.fail_upload_at = 1

    resp = client.post("/", data=with_files(FORM), content_type="multipart/form-data")

    assert resp.status_code == 502
    assert "Falha no upload do documento documento_nada_consta" in resp.get_data(as_text=True)
    assert store.calls_to("delete_record") == [("delete_record", 11)]


def test_unexpected_failure_shows_generic_message(client, store, monkeypatch):
    def broken():
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    monkeypatch.setattr(app_module, "get_coordinator", broken)

    resp = client.post("/", data=with_files(FORM), content_type="multipart/form-data")

    assert resp.status_code == 500
    body = resp.get_data(as_text=True)
    assert app_module.MSG_UNEXPECTED in body
    assert "RuntimeError" not in body
    assert "SUPABASE_ANON_KEY" not in body


def test_page_revalidates_through_api_only_after_submit(client, store):
    body = client.get("/").get_data(as_text=True)
    assert "/api/validate" in body
    assert "var submitted = false;" in body

    data = with_files(FORM)
    del data["photo"]
    body = client.post("/", data=data, content_type="multipart/form-data").get_data(as_text=True)
    assert "var submitted = true;" in body
    assert 'id="err-photo"' in body


def test_api_format_masks_phone_with_previous_value(client):
    resp = client.post("/api/format", json={"field": "phone", "value": "(21) 9 87654", "previous": "(21) 9 8765-4"})
    assert resp.get_json() == {"value": "(21) 9 8765"}

    resp = client.post("/api/format", json={"field": "payment_key", "value": "12345678000195",
                                            "payment_key_type": "cnpj"})
    assert resp.get_json() == {"value": "12.345.678/0001-95"}


def test_api_format_rejects_unknown_field(client):
    resp = client.post("/api/format", json={"field": "nickname", "value": "x"})
    assert resp.status_code == 400


def test_api_validate_returns_errors_and_status(client):
    record = {k: v for k, v in FORM.items() if k != "consent"}
    record["consent"] = True
    record["license_number"] = "12.345.678-9"
    record["postal_code"] = "69000-000"
    record["phone"] = "(92) 9 8765-4321"
    record["payment_key"] = "123.456.789-01"
    files = {"nada_consta": "nc.pdf", "residence_proof": "r.pdf", "vaccination_booklet": "v.pdf"}

    resp = client.post("/api/validate", json={"record": record, "files": files, "touched": ["email"]})
    data = resp.get_json()
    assert set(data["errors"]) == {"photo"}
    assert data["visible_errors"] == {}
    assert data["status"]["type"] == "error"

    files["photo"] = "f.jpg"
    resp = client.post("/api/validate", json={"record": record, "files": files, "blur": "email"})
    data = resp.get_json()
    assert data["errors"] == {}
    assert data["status"] == {"message": "É possível enviar o formulário!", "type": "success"}


def test_api_deadline(client, monkeypatch):
    monkeypatch.setattr(app_module.config, "SUBMISSION_DEADLINE", DEADLINE)
    monkeypatch.setattr(app_module, "now", lambda: BEFORE_DEADLINE)
    data = client.get("/api/deadline").get_json()
    assert data["open"] is True
    assert data["time_left"] == "10d 2h 30m 0s"

    monkeypatch.setattr(app_module, "now", lambda: DEADLINE)
    data = client.get("/api/deadline").get_json()
    assert data["open"] is False
    assert data["time_left"] == "Encerrado"
