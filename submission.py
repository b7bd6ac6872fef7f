"""
Submission of a registration against Supabase.

A submission is three ordered writes with no transaction around them:

  1. insert the row with every scalar column and read back its id
  2. upload each attachment to {folder}/{id}/{uuid}.{ext}
  3. patch the row with the storage path of every uploaded file

When a step fails after something was written, a compensating saga undoes
it: first the uploaded objects (best effort, only logged on failure), then
the row. If the row cannot be removed the submitter is told to contact
support instead of seeing the original error.
"""

import datetime
import enum
import logging
import uuid
from dataclasses import dataclass, field

from deadline import is_open
from errors import (
    DeadlinePassedError,
    DuplicateKeyError,
    LocalValidationError,
    RegistrationError,
    StoreCriticalRollbackError,
    StoreRollbackError,
    StoreUploadError,
    StoreWriteError,
)
from schema import FILE_FIELDS, has_file, to_columns
from supabase_client import STORE_ERRORS, SupabaseError
from validation import MSG_FIX_ERRORS, validate_form

logger = logging.getLogger(__name__)

MSG_SUCCESS = "Formulário enviado com sucesso! 🎉"
MSG_DEADLINE = "O prazo para envio foi encerrado."
MSG_CRITICAL = "Ocorreu um erro e a limpeza automática falhou. Por favor, contate o suporte."
MSG_NO_ID = "Não foi possível criar o registro no banco de dados após a inserção."

# column named in a unique-violation -> how the message refers to it
DUPLICATE_LABELS = {
    "email": "de e-mail",
    "conselho": "de número do conselho",
}
DUPLICATE_FALLBACK_LABEL = "fornecido"


class SubmissionState(enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED_LOCALLY = "rejected_locally"
    SUBMITTING = "submitting"
    CREATING = "creating"
    UPLOADING = "uploading"
    PATCHING = "patching"
    SUCCEEDED = "succeeded"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK_CLEANLY = "rolled_back_cleanly"
    ROLLBACK_FAILED_CRITICALLY = "rollback_failed_critically"


@dataclass
class SubmissionResult:
    state: SubmissionState
    message: str
    submission_id: int | None = None
    errors: dict = field(default_factory=dict)
    uploaded_paths: list = field(default_factory=list)
    history: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED


# -------------------------------------------------------------------
# Error classification
# -------------------------------------------------------------------
def _duplicate_column(exc: SupabaseError) -> str | None:
    """
    Which known column collided. PostgREST puts it in details as
    'Key (email)=(...) already exists.'; the constraint name in the message
    is the fallback. Unknown columns give None.
    """
    details = (exc.details or "").lower()
    for column in DUPLICATE_LABELS:
        if f"key ({column})" in details:
            return column
    message = (exc.message or "").lower()
    for column in DUPLICATE_LABELS:
        if column in message:
            return column
    return None


def classify_insert_error(exc: SupabaseError) -> StoreWriteError:
    if exc.is_unique_violation:
        column = _duplicate_column(exc)
        label = DUPLICATE_LABELS.get(column, DUPLICATE_FALLBACK_LABEL)
        return DuplicateKeyError(
            f"O valor {label} já está cadastrado em nosso sistema. "
            "Por favor, verifique os dados ou entre em contato com o suporte.",
            column=column,
        )
    return StoreWriteError(f"Falha ao salvar o registro no banco de dados: {exc.message}")


def store_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc)


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1]


# -------------------------------------------------------------------
# Compensating saga
# -------------------------------------------------------------------
@dataclass
class CompensatingStep:
    name: str
    action: object  # zero-arg callable
    critical: bool = False


class RollbackSaga:
    """
    Ordered undo steps. A non-critical step that fails is logged and the
    saga moves on; a critical one that fails ends the saga with
    StoreCriticalRollbackError.
    """

    def __init__(self):
        self.steps = []
        self.failures = []

    def add(self, name: str, action, critical: bool = False) -> None:
        self.steps.append(CompensatingStep(name, action, critical))

    def run(self) -> None:
        for step in self.steps:
            logger.info("Rollback step %s started", step.name)
            try:
                step.action()
            except STORE_ERRORS as e:
                message = store_message(e)
                if step.critical:
                    logger.critical("Rollback step %s FAILED, partial state may remain: %s", step.name, message)
                    raise StoreCriticalRollbackError(MSG_CRITICAL) from e
                logger.error("Rollback step %s failed, objects may be orphaned in storage: %s", step.name, message)
                self.failures.append(StoreRollbackError(message))
                continue
            logger.info("Rollback step %s done", step.name)


# -------------------------------------------------------------------
# Coordinator
# -------------------------------------------------------------------
class SubmissionCoordinator:
    def __init__(self, store, bucket: str, deadline: datetime.datetime,
                 clock=datetime.datetime.now, name_factory=uuid.uuid4,
                 cache_control: str = "3600"):
        self.store = store
        self.bucket = bucket
        self.deadline = deadline
        self.clock = clock
        self.name_factory = name_factory
        self.cache_control = cache_control

    def submit(self, record: dict) -> SubmissionResult:
        history = [SubmissionState.IDLE, SubmissionState.VALIDATING]

        try:
            self._check_preconditions(record)
        except LocalValidationError as e:
            history.append(SubmissionState.REJECTED_LOCALLY)
            return SubmissionResult(SubmissionState.REJECTED_LOCALLY, e.user_message,
                                    errors=e.errors, history=history)
        except DeadlinePassedError as e:
            history.append(SubmissionState.REJECTED_LOCALLY)
            return SubmissionResult(SubmissionState.REJECTED_LOCALLY, e.user_message, history=history)

        history.append(SubmissionState.SUBMITTING)
        submission_id = None
        uploaded = []  # ledger of object paths already in storage

        try:
            history.append(SubmissionState.CREATING)
            submission_id = self._create(record)

            history.append(SubmissionState.UPLOADING)
            columns = self._upload_all(record, submission_id, uploaded)

            history.append(SubmissionState.PATCHING)
            self._patch(submission_id, columns)
        except RegistrationError as e:
            logger.error("Submission failed: %s", e.user_message)
            history.append(SubmissionState.ROLLING_BACK)
            state, message = self._roll_back(submission_id, uploaded, e)
            history.append(state)
            return SubmissionResult(state, message, submission_id=submission_id,
                                    uploaded_paths=list(uploaded), history=history)

        logger.info("Submission %s stored with %d attachment(s)", submission_id, len(uploaded))
        history.append(SubmissionState.SUCCEEDED)
        return SubmissionResult(SubmissionState.SUCCEEDED, MSG_SUCCESS, submission_id=submission_id,
                                uploaded_paths=list(uploaded), history=history)

    # ---------------------------------------------------------------------
    # Steps
    # ---------------------------------------------------------------------
    def _check_preconditions(self, record: dict) -> None:
        errors = validate_form(record)
        if errors:
            raise LocalValidationError(errors, MSG_FIX_ERRORS)
        if not is_open(self.clock(), self.deadline):
            raise DeadlinePassedError(MSG_DEADLINE)

    def _create(self, record: dict):
        try:
            row = self.store.insert(to_columns(record))
        except SupabaseError as e:
            raise classify_insert_error(e) from e
        except STORE_ERRORS as e:
            raise StoreWriteError(f"Falha ao salvar o registro no banco de dados: {store_message(e)}") from e
        submission_id = (row or {}).get("id")
        if submission_id is None:
            raise StoreWriteError(MSG_NO_ID)
        return submission_id

    def _upload_all(self, record: dict, submission_id, uploaded: list) -> dict:
        columns = {}
        for f in FILE_FIELDS:
            fs = record.get(f["id"])
            if not has_file(fs):
                continue
            name = f"{self.name_factory()}.{file_extension(fs.filename)}"
            path = f"{f['folder']}/{submission_id}/{name}"
            try:
                stored = self.store.upload_object(
                    self.bucket, path, fs,
                    content_type=getattr(fs, "mimetype", None),
                    cache_control=self.cache_control,
                    upsert=False,
                )
            except STORE_ERRORS as e:
                raise StoreUploadError(
                    f"Falha no upload do documento {f['column']}. O envio foi cancelado.",
                    column=f["column"],
                ) from e
            uploaded.append(path)
            columns[f["column"]] = stored or path
        return columns

    def _patch(self, submission_id, columns: dict) -> None:
        if not columns:
            return
        try:
            self.store.update(submission_id, columns)
        except STORE_ERRORS as e:
            raise StoreWriteError(f"Falha ao salvar os caminhos dos arquivos: {store_message(e)}") from e

    def _roll_back(self, submission_id, uploaded: list, error: RegistrationError):
        saga = RollbackSaga()
        if uploaded:
            paths = list(uploaded)
            saga.add("delete_objects", lambda: self.store.delete_objects(self.bucket, paths))
        if submission_id is not None:
            saga.add("delete_record", lambda: self.store.delete_record(submission_id), critical=True)

        try:
            saga.run()
        except StoreCriticalRollbackError as e:
            return SubmissionState.ROLLBACK_FAILED_CRITICALLY, e.user_message
        return SubmissionState.ROLLED_BACK_CLEANLY, error.user_message
