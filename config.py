import os
import datetime

from dotenv import load_dotenv

# -------------------------------------------------------------------
# Load env
# -------------------------------------------------------------------
load_dotenv()

# -------------------------------------------------------------------
# Supabase
# -------------------------------------------------------------------
SUPABASE_URL      = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")
SUPABASE_TABLE    = os.getenv("SUPABASE_TABLE", "solicitacoes_cadastro")
SUPABASE_STORAGE_BUCKET = os.getenv("SUPABASE_STORAGE_BUCKET", "solicitacoes-files")
STORAGE_CACHE_CONTROL   = os.getenv("STORAGE_CACHE_CONTROL", "3600")
SUPABASE_TIMEOUT  = float(os.getenv("SUPABASE_TIMEOUT", "90"))

# -------------------------------------------------------------------
# Submission window (naive local time)
# -------------------------------------------------------------------
SUBMISSION_DEADLINE = datetime.datetime.fromisoformat(
    os.getenv("SUBMISSION_DEADLINE", "2025-07-11T12:00:00")
)

# -------------------------------------------------------------------
# Flask
# -------------------------------------------------------------------
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY")
MAX_UPLOAD_MB    = int(os.getenv("MAX_UPLOAD_MB", "50"))
LOG_LEVEL        = os.getenv("LOG_LEVEL", "INFO").upper()
PORT             = int(os.getenv("PORT", "10000"))
