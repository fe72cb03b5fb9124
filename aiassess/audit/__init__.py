from aiassess.audit.context import RequestContext, parse_user_agent
from aiassess.audit.logger import AuditLogger, AuditResult

__all__ = ["AuditLogger", "AuditResult", "RequestContext", "parse_user_agent"]
