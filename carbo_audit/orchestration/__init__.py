from carbo_audit.orchestration.audit_pipeline import AuditPipeline, get_pipeline

__all__ = ["AuditPipeline", "get_pipeline"]
