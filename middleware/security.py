"""
PantryPal Security Middleware
Security headers, request screening and temporary blocking of repeat offenders
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog
import time
import re
from typing import Dict, List, Optional

from core.config import settings
from utils.request_utils import get_client_ip

logger = structlog.get_logger()


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Security middleware that adds:
    - Security headers
    - Scanner user-agent and path traversal rejection
    - Request size ceiling
    - Temporary blocking after repeated violations
    """

    def __init__(self, app):
        super().__init__(app)

        self.suspicious_user_agents = [
            re.compile(r"sqlmap", re.IGNORECASE),
            re.compile(r"nikto", re.IGNORECASE),
            re.compile(r"nessus", re.IGNORECASE),
            re.compile(r"acunetix", re.IGNORECASE),
            re.compile(r"havij", re.IGNORECASE)
        ]

        # A full recipe upload plus form fields
        self.max_request_size = settings.MAX_FILE_SIZE * (settings.MAX_RECIPE_IMAGES + 1)

        self.security_violations: Dict[str, List[float]] = {}
        self.block_threshold = 5
        self.violation_window = 3600  # 1 hour
        self.last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)

        if self._is_ip_blocked(client_ip):
            return JSONResponse(
                status_code=429,
                content={"error": "rate_limited", "message": "Too many security violations. Try again later."}
            )

        violation = self._validate_request(request, client_ip)
        if violation:
            return violation

        response = await call_next(request)
        self._add_security_headers(response, request)
        return response

    def _validate_request(self, request: Request, client_ip: str) -> Optional[JSONResponse]:
        """Reject obviously hostile requests before routing"""
        user_agent = request.headers.get("user-agent", "")
        if any(pattern.search(user_agent) for pattern in self.suspicious_user_agents):
            self._record_security_violation(client_ip, "suspicious_user_agent")
            return JSONResponse(status_code=403, content={"error": "forbidden", "message": "Forbidden"})

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_request_size:
            self._record_security_violation(client_ip, "oversized_request")
            return JSONResponse(status_code=413, content={"error": "payload_too_large", "message": "Request too large"})

        if self._has_path_traversal(request.url.path):
            self._record_security_violation(client_ip, "path_traversal")
            return JSONResponse(status_code=403, content={"error": "forbidden", "message": "Forbidden"})

        return None

    def _has_path_traversal(self, path: str) -> bool:
        dangerous_patterns = ["../", "..\\", "..%2f", "..%5c", "%2e%2e%2f", "%2e%2e%5c"]
        path_lower = path.lower()

        return any(pattern in path_lower for pattern in dangerous_patterns)

    def _record_security_violation(self, client_ip: str, violation_type: str):
        current_time = time.time()

        if current_time - self.last_cleanup > self.violation_window:
            self._cleanup_violations(current_time)
            self.last_cleanup = current_time

        self.security_violations.setdefault(client_ip, []).append(current_time)

        logger.warning(
            "Security violation detected",
            client_ip=client_ip,
            violation_type=violation_type,
            total_violations=len(self.security_violations[client_ip])
        )

    def _is_ip_blocked(self, client_ip: str) -> bool:
        """Block if more than block_threshold violations in the last hour"""
        current_time = time.time()
        recent = [
            t for t in self.security_violations.get(client_ip, [])
            if current_time - t < self.violation_window
        ]
        return len(recent) > self.block_threshold

    def _cleanup_violations(self, current_time: float):
        for ip in list(self.security_violations.keys()):
            self.security_violations[ip] = [
                t for t in self.security_violations[ip]
                if current_time - t < self.violation_window
            ]
            if not self.security_violations[ip]:
                del self.security_violations[ip]

    def _add_security_headers(self, response: Response, request: Request):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        # HSTS (only for HTTPS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # API responses carry per-user data
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"
