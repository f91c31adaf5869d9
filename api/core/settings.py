import os
from pathlib import Path
from dotenv import load_dotenv
from datetime import timedelta

# Load environment variables
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


def env_list(name, default=''):
    return [item.strip() for item in os.getenv(name, default).split(',') if item.strip()]


# =================================================================
# Security Settings
# =================================================================
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-this-in-production')
DEBUG = env_bool('DJANGO_DEBUG', 'True')
ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,.timesheet-saas.test,testserver')
AUTH_USER_MODEL = 'users.User'

# =================================================================
# Application Definition
# =================================================================
INSTALLED_APPS = [
    # Django core apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third-party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'django_filters',
    'drf_spectacular',
    'drf_spectacular_sidecar',

    # Local apps (feature-based)
    'core.apps.CoreConfig',
    'organization.apps.OrganizationConfig',
    'users.apps.UsersConfig',
    'weekly_reports.apps.WeeklyReportsConfig',
    'holidays.apps.HolidaysConfig',
    'health.apps.HealthConfig',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'core.tenants.middleware.TenantMiddleware',  # Multi-tenant context
    'core.tenants.middleware.IpWhitelistMiddleware',  # Per-tenant IP allow-list
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'core.wsgi.application'

# =================================================================
# Database Configuration
# =================================================================
DATABASE_ENGINE = os.getenv('DATABASE_ENGINE', 'sqlite')

if DATABASE_ENGINE == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DATABASE_NAME', 'timesheet_saas'),
            'USER': os.getenv('DATABASE_USER', 'postgres'),
            'PASSWORD': os.getenv('DATABASE_PASSWORD', ''),
            'HOST': os.getenv('DATABASE_HOST', 'localhost'),
            'PORT': os.getenv('DATABASE_PORT', '5432'),
        }
    }
else:
    # Default to SQLite for development
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# =================================================================
# Multi-Tenancy
# =================================================================
# Read through core.tenants.conf.tenant_setting()
TENANCY = {
    'SLUG_MODE': os.getenv('TENANT_SLUG_MODE', 'subdomain'),  # subdomain | path
    'PRIMARY_DOMAIN': os.getenv('TENANT_PRIMARY_DOMAIN', 'timesheet-saas.test'),
    'HQ_PORTAL_DOMAIN': os.getenv('TENANT_HQ_PORTAL_DOMAIN', 'hq.timesheet-saas.test'),
    'API_PREFIX': os.getenv('TENANT_API_PREFIX', 'api/v1'),
    'STATEFUL_DOMAINS': env_list('TENANT_STATEFUL_DOMAINS'),
    'TRUST_FORWARDED_FOR': env_bool('TENANT_TRUST_FORWARDED_FOR'),
    'REGISTRATION_ENABLED': env_bool('TENANT_REGISTRATION_ENABLED', 'True'),
    'REGISTRATION_REQUIRES_EMAIL_VERIFICATION': env_bool('TENANT_REGISTRATION_REQUIRES_EMAIL_VERIFICATION'),
    'INVITATION_TTL_DAYS': int(os.getenv('TENANT_INVITATION_TTL_DAYS', '7')),
}

# =================================================================
# Authentication & JWT
# =================================================================
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'tenant': os.getenv('TENANT_API_RATE_LIMIT', '120/min'),
        'tenant_anon': os.getenv('ANON_API_RATE_LIMIT', '60/min'),
    },
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

# =================================================================
# API Documentation (drf-spectacular)
# =================================================================
SPECTACULAR_SETTINGS = {
    'TITLE': 'Timesheet SaaS API',
    'DESCRIPTION': '''
# 週報系統 API 文件 / Weekly Report API Documentation

## 簡介 / Introduction

多租戶週報系統：成員每週填寫工作項目與下週計畫，主管依組織層級審閱、鎖定與匯出。

A multi-tenant weekly report service: members log their work and next week's plans,
managers review, lock and export them along the company hierarchy.

## 功能模組 / Feature Modules

| 模組 Module | 說明 Description |
|-------------|------------------|
| 🔐 認證 Authentication | 登入、註冊、Google OAuth / Login, registration, Google OAuth |
| 🏠 租戶 Tenants | 公司設定、IP 白名單、品牌 / Company settings, IP whitelist, branding |
| 🏢 組織 Organization | 事業群、部門、小組 / Divisions, departments, teams |
| 👥 成員 Members | 邀請、角色指派 / Invitations, role assignment |
| 📝 週報 Weekly Reports | 填寫、送出、退回、鎖定、匯出 / Write, submit, reopen, lock, export |
| 📅 假期 Holidays | 國定假日與補班日 / Public holidays and makeup workdays |
| 🛡️ 總部 HQ | 公司管理 / Company administration |

## 租戶網址 / Tenant URLs

租戶 API 位於 `/api/v1/{company}/`。

Tenant APIs live under `/api/v1/{company}/`.

## 認證方式 / Authentication

```
Authorization: Bearer <your_jwt_token>
```
''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SWAGGER_UI_SETTINGS': {
        'deepLinking': True,
        'persistAuthorization': True,
        'displayOperationId': False,
        'docExpansion': 'list',
        'filter': True,
        'tagsSorter': 'alpha',
        'operationsSorter': 'alpha',
    },
    'SECURITY': [{'Bearer': []}],
    'SWAGGER_UI_DIST': 'SIDECAR',
    'SWAGGER_UI_FAVICON_HREF': 'SIDECAR',
    'REDOC_DIST': 'SIDECAR',
    # API 標籤分類和說明
    'TAGS': [
        {
            'name': 'Health',
            'description': '🏥 **健康檢查 / Health Check**\n\n系統健康狀態檢查端點，無需認證。\n\nSystem health status check endpoint, no authentication required.'
        },
        {
            'name': 'Authentication',
            'description': '🔐 **認證 / Authentication**\n\nJWT Token、註冊與 Google OAuth。\n\nJWT tokens, registration and Google OAuth.'
        },
        {
            'name': 'Tenants',
            'description': '🏠 **租戶設定 / Tenant Settings**\n\n歡迎頁、IP 白名單、品牌、組織層級與通知偏好。\n\nWelcome page, IP whitelist, branding, organization levels and notification preferences.'
        },
        {
            'name': 'Organization',
            'description': '🏢 **組織 / Organization**\n\n事業群、部門、小組與邀請連結。\n\nDivisions, departments, teams and invitation links.'
        },
        {
            'name': 'Members',
            'description': '👥 **成員 / Members**\n\n成員列表、邀請與角色指派。\n\nMember list, invitations and role assignment.'
        },
        {
            'name': 'Weekly Reports',
            'description': '📝 **週報 / Weekly Reports**\n\n週報的建立、送出、退回、鎖定與匯出。\n\nCreate, submit, reopen, lock and export weekly reports.'
        },
        {
            'name': 'Holidays',
            'description': '📅 **假期 / Holidays**\n\n年度與 ISO 週的假期資料。\n\nHolidays by year and ISO week.'
        },
        {
            'name': 'HQ',
            'description': '🛡️ **總部 / HQ**\n\n公司建立、狀態與人數上限管理。\n\nCompany creation, status and user limit management.'
        },
        {
            'name': 'Notifications',
            'description': '🔔 **通知 / Notifications**\n\n站內通知與已讀狀態。\n\nIn-app notifications and read state.'
        },
    ],
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.getenv('JWT_ACCESS_TOKEN_LIFETIME_MINUTES', '60'))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv('JWT_REFRESH_TOKEN_LIFETIME_DAYS', '7'))),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": True,
}

# =================================================================
# CORS Settings
# =================================================================
CORS_ALLOWED_ORIGINS = env_list('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000')
CORS_ALLOW_CREDENTIALS = True

# CSRF Trusted Origins (Required for Django 4.x+)
CSRF_TRUSTED_ORIGINS = env_list(
    'CSRF_TRUSTED_ORIGINS',
    'http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000,http://127.0.0.1:8000'
)

# Stateful (cookie-carrying) tenant front-ends
for domain in TENANCY['STATEFUL_DOMAINS']:
    origin = domain if '://' in domain else f'https://{domain}'
    if origin not in CSRF_TRUSTED_ORIGINS:
        CSRF_TRUSTED_ORIGINS.append(origin)
    if origin not in CORS_ALLOWED_ORIGINS:
        CORS_ALLOWED_ORIGINS.append(origin)

# For development only - remove in production
if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True

# =================================================================
# Static Files
# =================================================================
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# =================================================================
# Front-end
# =================================================================
FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')

# =================================================================
# Google OAuth 2.0
# =================================================================
GOOGLE_OAUTH_CLIENT_ID = os.getenv('GOOGLE_OAUTH_CLIENT_ID', '')
GOOGLE_OAUTH_CLIENT_SECRET = os.getenv('GOOGLE_OAUTH_CLIENT_SECRET', '')
GOOGLE_OAUTH_REDIRECT_URI = os.getenv('GOOGLE_OAUTH_REDIRECT_URI', 'http://localhost:8000/api/v1/auth/google/callback/')
GOOGLE_OAUTH_STATE_MAX_AGE = int(os.getenv('GOOGLE_OAUTH_STATE_MAX_AGE', '600'))

# =================================================================
# Holiday Calendar (New Taipei City Open Data)
# =================================================================
HOLIDAY_SOURCE_URL = os.getenv(
    'HOLIDAY_SOURCE_URL',
    'https://data.ntpc.gov.tw/api/datasets/308dcd75-6434-45bc-a95f-584da4fed251/csv'
)
HOLIDAY_PAGE_SIZE = int(os.getenv('HOLIDAY_PAGE_SIZE', '400'))
HOLIDAY_TIMEOUT = int(os.getenv('HOLIDAY_TIMEOUT', '30'))
HOLIDAY_CACHE_TTL = int(os.getenv('HOLIDAY_CACHE_TTL', str(60 * 60 * 24)))

# =================================================================
# Email Configuration
# =================================================================
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_USE_TLS = env_bool('EMAIL_USE_TLS', 'True')
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'noreply@timesheet-saas.test')

# =================================================================
# Redis Configuration (for caching)
# =================================================================
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

if REDIS_URL and not DEBUG:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'timesheet-saas',
        }
    }

# =================================================================
# Celery (see core/celery.py for the beat schedule)
# =================================================================
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_TIMEZONE = os.getenv('CELERY_TIMEZONE', 'Asia/Taipei')

# =================================================================
# Sentry Error Tracking
# =================================================================
SENTRY_DSN = os.getenv('SENTRY_DSN', '')
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=float(os.getenv('SENTRY_TRACES_SAMPLE_RATE', '0.2')),
        send_default_pii=False,
        environment=os.getenv('APP_ENV', 'development'),
    )

# =================================================================
# Logging Configuration
# =================================================================
LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django.db.backends': {
            'level': 'INFO',
        },
    },
}

# =================================================================
# Password Validation
# =================================================================
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# =================================================================
# Internationalization
# =================================================================
LANGUAGE_CODE = 'zh-hant'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Taipei')
USE_I18N = True
USE_TZ = True

# =================================================================
# Default Primary Key Field Type
# =================================================================
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
