# secretvoting/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
from datetime import datetime, timezone
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

# Append-only audit trail of voting events: hash chained, Ed25519 signed.
# Entries name proposals and voters, never choices.

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = signing_key or Ed25519PrivateKey.generate()
        self._load_previous_hash()

    def _load_previous_hash(self):
        if os.path.exists(self.log_file):
            with open(self.log_file, 'r') as f:
                lines = f.readlines()
                if lines:
                    try:
                        last_entry = json.loads(lines[-1])
                        self.previous_hash = last_entry.get('hash')
                    except ValueError:
                        self.previous_hash = None

    def log_event(self, event_type, data, actor=None):
        try:
            log_entry = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "data": data,
                "actor": actor,
                "previous_hash": self.previous_hash,
            }
            entry_json = json.dumps(log_entry, sort_keys=True)
            entry_hash = hashlib.sha256(entry_json.encode()).hexdigest()
            log_entry['hash'] = entry_hash

            signature = self.signing_key.sign(entry_json.encode())
            log_entry['signature'] = base64.b64encode(signature).decode()

            with open(self.log_file, 'a') as f:
                f.write(json.dumps(log_entry) + "\n")

            self.previous_hash = entry_hash
        except OSError as e:
            # The event already happened; a broken trail must not undo it.
            logger.error("Audit log error: %s", e)

    def read_entries(self):
        if not os.path.exists(self.log_file):
            return []
        with open(self.log_file, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]

    def verify_log_integrity(self):
        try:
            if not os.path.exists(self.log_file):
                return True
            previous_hash = None
            public_key = self.signing_key.public_key()
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    log_entry = json.loads(line)
                    if log_entry.get('previous_hash') != previous_hash:
                        return False
                    signature = base64.b64decode(log_entry['signature'])
                    entry_copy = dict(log_entry)
                    entry_copy.pop('signature')
                    recorded_hash = entry_copy.pop('hash')
                    entry_json = json.dumps(entry_copy, sort_keys=True).encode()
                    if hashlib.sha256(entry_json).hexdigest() != recorded_hash:
                        return False
                    public_key.verify(signature, entry_json)
                    previous_hash = recorded_hash
            return True
        except Exception:
            return False
