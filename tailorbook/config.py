import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / '.env', override=False)

LOCAL_ENV = BASE_DIR / '.env.local'
if LOCAL_ENV.exists():
    load_dotenv(LOCAL_ENV, override=True)


class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', f"sqlite:///{BASE_DIR / 'tailorbook.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    APP_PROFILE = 'development'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    AUTO_CREATE_SCHEMA = True

    PRODUCT_NAME = os.getenv('PRODUCT_NAME', 'Tailorbook')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    DEFAULT_CURRENCY_SYMBOL = os.getenv('DEFAULT_CURRENCY_SYMBOL', '₹')

    # Identity provider credential shared by every account; users only ever see their PIN.
    AUTH_MASTER_PASSWORD = os.getenv('AUTH_MASTER_PASSWORD', 'Sewvee_Auth_Secure_2025')
    LEGACY_PIN_SUFFIX = os.getenv('LEGACY_PIN_SUFFIX', '_SV2025')
    SESSION_TOKEN_BYTES = 32

    OTP_TRANSPORT = os.getenv('OTP_TRANSPORT', 'whatsapp').lower()
    OTP_EXP_MINUTES = int(os.getenv('OTP_EXP_MINUTES', '10'))
    OTP_LENGTH = 6

    WHATSAPP_TOKEN = os.getenv('WHATSAPP_TOKEN')
    WHATSAPP_PHONE_NUMBER_ID = os.getenv('WHATSAPP_PHONE_NUMBER_ID')
    WHATSAPP_API_URL = os.getenv('WHATSAPP_API_URL')
    WHATSAPP_OTP_TEMPLATE = os.getenv('WHATSAPP_OTP_TEMPLATE', 'otp_template')
    WHATSAPP_DEFAULT_COUNTRY_CODE = os.getenv('WHATSAPP_DEFAULT_COUNTRY_CODE', '91')
    WHATSAPP_TIMEOUT_SECONDS = int(os.getenv('WHATSAPP_TIMEOUT_SECONDS', '10'))

    MAIL_TRANSPORT = os.getenv('MAIL_TRANSPORT', 'console')
    MAIL_SMTP = os.getenv('MAIL_SMTP', 'smtp.mailtrap.io')
    MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
    MAIL_USERNAME = os.getenv('MAIL_USERNAME', '')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD', '')
    MAIL_SENDER = os.getenv('MAIL_SENDER', 'no-reply@example.local')
    PASSWORD_RESET_URL = os.getenv('PASSWORD_RESET_URL', 'https://tailorbook.example/reset')

    PERMANENT_SESSION_LIFETIME = timedelta(days=30)


class DevConfig(BaseConfig):
    DEBUG = True
    OTP_TRANSPORT = os.getenv('OTP_TRANSPORT', 'console').lower()


class StagingConfig(BaseConfig):
    DEBUG = False
    APP_PROFILE = 'staging'


class ProdConfig(BaseConfig):
    DEBUG = False
    APP_PROFILE = 'production'


class TestConfig(BaseConfig):
    TESTING = True
    APP_PROFILE = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    OTP_TRANSPORT = 'console'
    MAIL_TRANSPORT = 'console'
    LOG_LEVEL = 'WARNING'


PROFILES = {
    'development': DevConfig,
    'staging': StagingConfig,
    'production': ProdConfig,
    'testing': TestConfig,
}

Config = PROFILES.get(os.getenv('APP_PROFILE', 'development').lower(), DevConfig)
