"""
统一配置模块
- 配置文件: config/app_config.json（可调参数）
- 本地覆盖: config/app_config.local.json（本地私密配置，不入库）
- 环境变量优先覆盖敏感项（数据库 URL、JWT 密钥、邮箱账号等）
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent / "app_config.json"
_LOCAL_CONFIG_PATH = Path(__file__).parent / "app_config.local.json"


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


_RAW_CONFIG: Dict[str, Any] = _load_json(_CONFIG_PATH)
if _LOCAL_CONFIG_PATH.exists():
    _RAW_CONFIG = _deep_merge(_RAW_CONFIG, _load_json(_LOCAL_CONFIG_PATH))


def _section(name: str) -> Dict[str, Any]:
    return _RAW_CONFIG.get(name) or {}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseSettings:
    """数据库连接：默认本地 SQLite，生产环境改为 PostgreSQL / MySQL URL 即可"""
    url: str = "sqlite:///data/conference.db"
    echo: bool = False


@dataclass
class ApiSettings:
    """API 服务配置"""
    host: str = "127.0.0.1"
    port: int = 5800
    root_path: str = ""
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class AuthSettings:
    """认证配置：token 有效期、首个管理员账号（敏感项放 .local.json）"""
    secret_key: str = "change-me-in-local"
    token_expire_hours: float = 24.0
    min_password_length: int = 6
    admin_name: str = "Conference Admin"
    admin_email: str = "admin@conference.local"
    admin_default_password: str = "admin123"
    seed_admin_on_startup: bool = True


@dataclass
class MailSettings:
    """SMTP 发信配置。user/password 为空时视为未配置，发送会抛出 NotificationError"""
    host: str = "smtp.gmail.com"
    port: int = 587
    use_tls: bool = True
    user: str = ""
    password: str = ""
    sender_name: str = "Conference Admin"
    conference_name: str = "Conference"
    admin_recipients: List[str] = field(default_factory=list)
    portal_url: str = "http://localhost:5800/auth"
    timeout_seconds: int = 30

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)


@dataclass
class NotificationSettings:
    """通知 outbox：后台重发间隔与最大尝试次数"""
    dispatch_inline: bool = True
    dispatch_background: bool = True
    worker_enabled: bool = True
    poll_interval_seconds: int = 30
    max_attempts: int = 5
    batch_size: int = 50
    review_deadline_days: int = 7


@dataclass
class RateLimitSettings:
    """按客户端 IP 的固定窗口限流"""
    enabled: bool = True
    window_seconds: int = 15 * 60
    max_requests: int = 5000
    max_clients: int = 10000


@dataclass
class UploadSettings:
    """论文上传限制"""
    allowed_mime_types: List[str] = field(default_factory=lambda: [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ])
    max_size_mb: int = 10


@dataclass
class LoggingSettings:
    """日志：控制台 + 按大小轮转的文件"""
    level: str = "INFO"
    log_dir: str = "logs"
    file_name: str = "confreview.log"
    max_file_mb: int = 20
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = True


class Settings:
    def __init__(self):
        self.env = os.getenv("CONF_ENV", "dev")

        d = _section("database")
        self.database = DatabaseSettings(
            url=os.getenv("CONF_DATABASE_URL") or str(d.get("url", "sqlite:///data/conference.db")),
            echo=bool(d.get("echo", False)),
        )

        a = _section("api")
        origins = a.get("cors_origins") or ["*"]
        if isinstance(origins, str):
            origins = [x.strip() for x in origins.split(",") if x.strip()]
        self.api = ApiSettings(
            host=str(os.getenv("API_HOST") or a.get("host", "127.0.0.1")),
            port=int(os.getenv("API_PORT") or a.get("port", 5800)),
            root_path=str(a.get("root_path", "")),
            cors_origins=origins,
        )

        au = _section("auth")
        self.auth = AuthSettings(
            secret_key=os.getenv("CONF_SECRET_KEY") or str(au.get("secret_key", "change-me-in-local")),
            token_expire_hours=float(au.get("token_expire_hours", 24)),
            min_password_length=int(au.get("min_password_length", 6)),
            admin_name=str(au.get("admin_name", "Conference Admin")),
            admin_email=str(au.get("admin_email", "admin@conference.local")),
            admin_default_password=str(au.get("admin_default_password", "admin123")),
            seed_admin_on_startup=bool(au.get("seed_admin_on_startup", True)),
        )

        m = _section("mail")
        admins = m.get("admin_recipients") or []
        if isinstance(admins, str):
            admins = [x.strip() for x in admins.split(",") if x.strip()]
        self.mail = MailSettings(
            host=str(m.get("host", "smtp.gmail.com")),
            port=int(m.get("port", 587)),
            use_tls=bool(m.get("use_tls", True)),
            user=os.getenv("EMAIL_USER") or str(m.get("user", "")),
            password=os.getenv("EMAIL_PASS") or str(m.get("password", "")),
            sender_name=str(m.get("sender_name", "Conference Admin")),
            conference_name=str(m.get("conference_name", "Conference")),
            admin_recipients=admins,
            portal_url=os.getenv("FRONTEND_URL") or str(m.get("portal_url", "http://localhost:5800/auth")),
            timeout_seconds=int(m.get("timeout_seconds", 30)),
        )

        n = _section("notifications")
        self.notifications = NotificationSettings(
            dispatch_inline=_env_bool("CONF_NOTIFY_INLINE", bool(n.get("dispatch_inline", True))),
            dispatch_background=_env_bool("CONF_NOTIFY_BACKGROUND", bool(n.get("dispatch_background", True))),
            worker_enabled=_env_bool("CONF_NOTIFY_WORKER", bool(n.get("worker_enabled", True))),
            poll_interval_seconds=int(n.get("poll_interval_seconds", 30)),
            max_attempts=int(n.get("max_attempts", 5)),
            batch_size=int(n.get("batch_size", 50)),
            review_deadline_days=int(n.get("review_deadline_days", 7)),
        )

        r = _section("rate_limit")
        self.rate_limit = RateLimitSettings(
            enabled=_env_bool("CONF_RATE_LIMIT", bool(r.get("enabled", True))),
            window_seconds=int(r.get("window_seconds", 15 * 60)),
            max_requests=int(r.get("max_requests", 5000)),
            max_clients=int(r.get("max_clients", 10000)),
        )

        u = _section("upload")
        self.upload = UploadSettings(
            allowed_mime_types=list(u.get("allowed_mime_types") or UploadSettings().allowed_mime_types),
            max_size_mb=int(u.get("max_size_mb", 10)),
        )

        lg = _section("logging")
        self.logging = LoggingSettings(
            level=(os.getenv("CONF_LOG_LEVEL") or str(lg.get("level", "INFO"))).upper(),
            log_dir=os.getenv("CONF_LOG_DIR") or str(lg.get("log_dir", "logs")),
            file_name=str(lg.get("file_name", "confreview.log")),
            max_file_mb=int(lg.get("max_file_mb", 20)),
            backup_count=int(lg.get("backup_count", 5)),
            console_output=bool(lg.get("console_output", True)),
            file_output=_env_bool("CONF_LOG_FILE", bool(lg.get("file_output", True))),
        )

    @property
    def is_prod(self) -> bool:
        return self.env == "prod"

    def print_info(self):
        print(f"""
========================================
  Conference Review Backend
========================================
  环境: {self.env}
  数据库: {self.database.url}
  API: {self.api.host}:{self.api.port}
  邮件: {"configured" if self.mail.configured else "NOT configured"}
  限流: {self.rate_limit.max_requests}/{self.rate_limit.window_seconds}s
========================================
        """)


# 全局单例
settings = Settings()
