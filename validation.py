import re

from formatters import digits_only
from schema import FIELDS, MARITAL_SINGLE, SEX_MALE, has_file

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RANDOM_KEY_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

MSG_REQUIRED = "Este campo é obrigatório."
MSG_INVALID_OPTION = "Opção inválida."
MSG_INVALID_EMAIL = "Formato de email inválido."
MSG_FIX_ERRORS = "Por favor, corrija os erros no formulário antes de enviar."
MSG_READY = "É possível enviar o formulário!"

# Attachments that are always mandatory, with their messages
FILE_MESSAGES = {
    "nada_consta": "Documento Nada Consta é obrigatório.",
    "residence_proof": "Comprovante de Residência é obrigatório.",
    "vaccination_booklet": "Caderneta de Vacinação é obrigatória.",
    "photo": "Foto é obrigatória.",
}


def is_email(value) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))


def _digit_count_between(lo: int, hi: int):
    return lambda v: lo <= len(digits_only(v)) <= hi


# payment key type -> (check, message)
PAYMENT_KEY_RULES = {
    "cpf": (_digit_count_between(11, 11), "CPF inválido (esperado 11 dígitos)."),
    "cnpj": (_digit_count_between(14, 14), "CNPJ inválido (esperado 14 dígitos)."),
    "email": (is_email, MSG_INVALID_EMAIL),
    "celular": (_digit_count_between(10, 11), "Número de celular inválido (esperado 10 ou 11 dígitos)."),
    "aleatoria": (lambda v: bool(RANDOM_KEY_RE.match(v or "")), "Chave aleatória inválida (formato UUID)."),
}


def _is_blank(fdef: dict, value) -> bool:
    if fdef["type"] == "checkbox":
        return not value
    return value is None or str(value).strip() == ""


def validate_form(record: dict) -> dict:
    """
    Compute every violated rule for a snapshot of the form.
    Returns {field_id: message}; a field absent from the map currently passes.
    """
    errors = {}
    get = lambda k: record.get(k)

    # required scalars + fixed option lists
    for f in FIELDS:
        if f["type"] == "files":
            continue
        v = get(f["id"])
        if f.get("required") and _is_blank(f, v):
            errors[f["id"]] = MSG_REQUIRED
            continue
        if f["type"] == "select" and v and v not in f["options"]:
            errors[f["id"]] = MSG_INVALID_OPTION

    if get("email") and not is_email(get("email")):
        errors["email"] = MSG_INVALID_EMAIL

    if get("license_number") and len(digits_only(get("license_number"))) != 9:
        errors["license_number"] = "Número do Conselho inválido (esperado 9 dígitos)."

    if get("postal_code") and len(digits_only(get("postal_code"))) != 8:
        errors["postal_code"] = "CEP inválido (esperado 8 dígitos)."

    if get("phone") and len(digits_only(get("phone"))) != 11:
        errors["phone"] = "Celular inválido (esperado 11 dígitos para o formato (XX) X XXXX-XXXX)."
    if get("phone_secondary") and len(digits_only(get("phone_secondary"))) != 11:
        errors["phone_secondary"] = "Celular opcional inválido (esperado 11 dígitos para o formato (XX) X XXXX-XXXX)."

    key_type = get("payment_key_type")
    if key_type:
        rule = PAYMENT_KEY_RULES.get(key_type)
        if rule is not None:
            check, message = rule
            if not check(get("payment_key") or ""):
                errors["payment_key"] = message
    elif get("payment_key"):
        errors["payment_key_type"] = "Por favor, selecione o tipo de chave PIX."

    for fid, message in FILE_MESSAGES.items():
        if not has_file(get(fid)):
            errors[fid] = message

    marital = get("marital_status")
    if marital and marital != MARITAL_SINGLE and not has_file(get("marital_attachment")):
        errors["marital_attachment"] = "Anexo Estado Civil é obrigatório para o seu estado civil."

    if get("sex") == SEX_MALE and not has_file(get("military_certificate")):
        errors["military_certificate"] = "Certificado de Reservista é obrigatório para homens."

    if not get("consent"):
        errors["consent"] = "É necessário declarar que as informações são verdadeiras."

    return errors


def status_for(errors: dict) -> tuple[str, str]:
    """(message, kind) shown under the form once a submission was attempted."""
    if errors:
        return MSG_FIX_ERRORS, "error"
    return MSG_READY, "success"
