# schema.py
# Registration form fields. "column" is the exact column name in the
# solicitacoes_cadastro table; file fields also carry their storage folder.

FIELDS = [
    # --- Personal data ---
    {"name": "Nome completo", "id": "full_name", "type": "text", "column": "nome", "required": True},

    {"name": "Sexo", "id": "sex", "type": "select", "column": "sexo",
     "options": ["homem", "mulher"], "required": True},

    {"name": "Número do Conselho (COREN)", "id": "license_number", "type": "text",
     "format": "license_number", "column": "conselho", "required": True},

    {"name": "Tipo de profissional", "id": "professional_category", "type": "select",
     "column": "tipo_profissional", "options": ["tecnico de enfermagem", "enfermeiro"], "required": True},

    {"name": "Estado civil", "id": "marital_status", "type": "select", "column": "estado_civil",
     "options": ["solteiro", "casado", "divorciado", "viuvo", "uniao_estavel"], "required": True},

    # --- Banking ---
    {"name": "Banco", "id": "bank", "type": "text", "column": "banco", "required": True},

    {"name": "Agência", "id": "branch", "type": "text", "format": "digits", "column": "agencia", "required": True},

    {"name": "Conta", "id": "account", "type": "text", "format": "digits", "column": "conta", "required": True},

    {"name": "Dígito", "id": "check_digit", "type": "text", "format": "digits", "column": "digito", "required": True},

    {"name": "Tipo de chave PIX", "id": "payment_key_type", "type": "select", "column": "pix_type",
     "options": ["cpf", "cnpj", "email", "celular", "aleatoria"], "required": True},

    # masked according to payment_key_type
    {"name": "Chave PIX", "id": "payment_key", "type": "text", "format": "payment_key", "column": "pix"},

    # --- Address ---
    {"name": "Rua", "id": "street", "type": "text", "column": "endereco_rua", "required": True},

    {"name": "Número", "id": "street_number", "type": "text", "format": "digits",
     "column": "endereco_numero", "required": True},

    {"name": "Bairro", "id": "neighborhood", "type": "text", "column": "endereco_bairro", "required": True},

    {"name": "Cidade", "id": "city", "type": "text", "column": "endereco_cidade", "required": True},

    {"name": "Complemento", "id": "complement", "type": "text", "column": "endereco_complemento"},

    {"name": "CEP", "id": "postal_code", "type": "text", "format": "postal_code", "column": "cep", "required": True},

    # --- Contact ---
    {"name": "Email", "id": "email", "type": "email", "column": "email", "required": True},

    {"name": "Celular", "id": "phone", "type": "phone", "format": "mobile", "column": "celular", "required": True},

    # stored as NULL when left blank
    {"name": "Celular (opcional)", "id": "phone_secondary", "type": "phone", "format": "mobile",
     "column": "celular2", "nullable": True},

    {"name": "Declaro que todas as informações fornecidas são verdadeiras.", "id": "consent",
     "type": "checkbox", "column": "termo_privacidade"},

    # --- Attachments (upload order matters: it is the rollback ledger order) ---
    {"name": "Documento Nada Consta", "id": "nada_consta", "type": "files",
     "column": "documento_nada_consta", "folder": "documentos-nada-consta", "required": True},

    {"name": "Comprovante de Residência", "id": "residence_proof", "type": "files",
     "column": "documento_residencia", "folder": "documentos-residencia", "required": True},

    {"name": "Anexo Estado Civil", "id": "marital_attachment", "type": "files",
     "column": "anexo_estado_civil", "folder": "anexo-estado-civil"},

    {"name": "Caderneta de Vacinação", "id": "vaccination_booklet", "type": "files",
     "column": "caderneta_vacina", "folder": "caderneta-vacina", "required": True},

    {"name": "Certificado de Reservista", "id": "military_certificate", "type": "files",
     "column": "certificado_reservista", "folder": "certificado-reservista"},

    {"name": "Foto", "id": "photo", "type": "files", "column": "foto", "folder": "fotos-perfil", "required": True},
]

FIELDS_BY_ID = {f["id"]: f for f in FIELDS}

SCALAR_FIELDS = [f for f in FIELDS if f["type"] != "files"]
FILE_FIELDS = [f for f in FIELDS if f["type"] == "files"]

# Select values that drive conditional rules
MARITAL_SINGLE = "solteiro"
SEX_MALE = "homem"


def empty_value(fdef: dict):
    if fdef["type"] == "checkbox":
        return False
    if fdef["type"] == "files":
        return None
    return ""


def empty_record() -> dict:
    return {f["id"]: empty_value(f) for f in FIELDS}


def has_file(value) -> bool:
    return bool(value) and bool(getattr(value, "filename", ""))


def to_columns(record: dict) -> dict:
    """
    Map the scalar part of a record to table columns for the initial insert.
    Attachments are written later, as storage paths, by the patch phase.
    """
    row = {}
    for f in SCALAR_FIELDS:
        v = record.get(f["id"], empty_value(f))
        if f.get("nullable") and v in (None, ""):
            v = None
        row[f["column"]] = v
    return row
