from app.certificates.fingerprint import CERTIFICATE_FIELDS, fingerprint, record_fields, verify

__all__ = ["CERTIFICATE_FIELDS", "fingerprint", "record_fields", "verify"]
