import os
import sys
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url
from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "True")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# Include Django's manage.py test invocation.
TESTING = (
    "PYTEST_CURRENT_TEST" in os.environ
    or "pytest" in os.path.basename(sys.argv[0])
    or "test" in sys.argv
)

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "accounting.apps.AccountingConfig",
    "documents.apps.DocumentsConfig",
    "reports.apps.ReportsConfig",
    "reconciliation.apps.ReconciliationConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "ledgercore.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# =============================================================================
# Database Configuration
# =============================================================================
# The store's transaction isolation is the only coordination between
# concurrent writers. PostgreSQL honours select_for_update(); SQLite
# serialises writers instead.
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Ledger Configuration
# =============================================================================
# Strict period gate: when True, a date whose accounting period row does not
# exist is rejected. When False, unknown periods are treated as open.
LEDGER_REQUIRE_DEFINED_PERIOD = os.getenv("LEDGER_REQUIRE_DEFINED_PERIOD", "False") == "True"

# Posting reference type -> model holding the journal_entry link column.
LEDGER_REFERENCE_MODELS = {
    "invoice": "documents.Invoice",
    "supplier_invoice": "documents.SupplierInvoice",
    "expense": "documents.Expense",
    "payroll_run": "documents.PayrollRun",
}

# Account codes used when a document is turned into a posting request.
LEDGER_POSTING_ACCOUNTS = {
    "cash": os.getenv("LEDGER_ACCOUNT_CASH", "1111"),
    "receivable": os.getenv("LEDGER_ACCOUNT_RECEIVABLE", "1141"),
    "sales": os.getenv("LEDGER_ACCOUNT_SALES", "4111"),
    "vat": os.getenv("LEDGER_ACCOUNT_VAT", "2141"),
    "payable": os.getenv("LEDGER_ACCOUNT_PAYABLE", "2111"),
    "purchases": os.getenv("LEDGER_ACCOUNT_PURCHASES", "5201"),
    "payroll_expense": os.getenv("LEDGER_ACCOUNT_PAYROLL_EXPENSE", "5210"),
    "accrued_payroll": os.getenv("LEDGER_ACCOUNT_ACCRUED_PAYROLL", "2430"),
    "payroll_deductions": os.getenv("LEDGER_ACCOUNT_PAYROLL_DEDUCTIONS", "2431"),
}

LEDGER_DEFAULT_BRANCH = os.getenv("LEDGER_DEFAULT_BRANCH", "main")

# =============================================================================
# Celery Configuration (Reconciliation sweep)
# =============================================================================
REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")

CELERY_BROKER_URL = REDIS_URL
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)

CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes
CELERY_WORKER_PREFETCH_MULTIPLIER = 1  # Prevent task hoarding
CELERY_TASK_ALWAYS_EAGER = TESTING

CELERY_BEAT_SCHEDULE = {
    "nightly-ledger-audit": {
        "task": "reconciliation.tasks.run_ledger_audit",
        "schedule": crontab(hour=2, minute=30),
    },
}

# =============================================================================
# Structured Logging Configuration
# =============================================================================
from ops.logging_config import get_logging_config
LOGGING = get_logging_config(DEBUG)

VERSION = os.getenv("APP_VERSION", "dev")
