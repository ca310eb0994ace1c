"""Regular expressions behind the field and form heuristics."""
import re

# Field names that hold tokens, secrets or credentials.
SECURITY_NAME_PATTERNS = [
    # CSRF tokens
    re.compile(r"csrf", re.I),
    re.compile(r"xsrf", re.I),
    re.compile(r"_token\Z", re.I),
    re.compile(r"authenticity_token", re.I),
    # Session and security tokens
    re.compile(r"session", re.I),
    re.compile(r"nonce", re.I),
    re.compile(r"security_token", re.I),
    re.compile(r"verification_token", re.I),
    # API keys and secrets
    re.compile(r"api[-_]?key", re.I),
    re.compile(r"secret", re.I),
    re.compile(r"private[-_]?key", re.I),
    # Passwords
    re.compile(r"password", re.I),
    re.compile(r"passwd", re.I),
    re.compile(r"pwd", re.I),
    # One-time codes
    re.compile(r"otp", re.I),
    re.compile(r"verification_code", re.I),
    re.compile(r"auth_code", re.I),
    re.compile(r"captcha", re.I),
    re.compile(r"^__"),
    re.compile(r"_id\Z", re.I),
]

TOKEN_VALUE_PATTERN = re.compile(r"[A-Za-z0-9+/=_-]+")

SECURITY_DATA_WORDS = ("csrf", "token", "security", "auth")

# Form id/class/name/action text.
AUTH_FORM_KEYWORD_PATTERN = re.compile(
    r"log[\s_-]?in|sign[\s_-]?(in|up|on)|regist(er|ration)|auth|"
    r"create[\s_-]?account|new[\s_-]?account|join[\s_-]?now|"
    r"roguin|touroku|kaiin|shinki|nyuukai",
    re.I,
)

# Concatenated field names, ids and placeholders.
CROSS_FIELD_AUTH_PATTERNS = [
    re.compile(r"user[\s_-]?(name|id)?.*pass", re.I),
    re.compile(r"(log[\s_-]?in|account).*pass", re.I),
    re.compile(r"e[\s_-]?mail.*confirm", re.I),
    re.compile(r"first[\s_-]?name.*last[\s_-]?name", re.I),
    re.compile(r"terms.*(conditions|service)", re.I),
]

# Submit buttons and button labels.
AUTH_BUTTON_PATTERN = re.compile(
    r"\b(log\s?in|sign\s?(in|up)|register|create\s+(an\s+)?account|join\s+now|get\s+started)\b|"
    r"ログイン|サインイン|サインアップ|新規登録|会員登録|登録する|アカウント作成",
    re.I,
)

# Visible text around the form.
AUTH_CONTEXT_PATTERN = re.compile(
    r"forgot\s+(your\s+)?password|already\s+have\s+an\s+account|don'?t\s+have\s+an\s+account|"
    r"create\s+(an\s+)?account|privacy\s+policy|terms\s+of\s+(service|use)|"
    r"パスワードを忘れ|会員登録|新規登録|ログイン|プライバシーポリシー|利用規約",
    re.I,
)

# Field names suggesting confirmation, agreement or name capture.
REGISTRATION_FIELD_PATTERN = re.compile(
    r"confirm|agree|consent|accept|terms|"
    r"first[\s_-]?name|last[\s_-]?name|given[\s_-]?name|family[\s_-]?name|surname",
    re.I,
)
