# secretvoting/security/input_validator.py

import re
import html
import bleach

from secretvoting.capability.mock_engine import EncryptedInput
from secretvoting.errors import InvalidParameters

# Input validation and sanitization for proposal text, identities and
# encrypted vote payloads arriving over the API.


class InputValidator:
    def __init__(self):
        self.allowed_html_tags = []
        self.allowed_html_attributes = {}

        self.patterns = {
            'address': re.compile(r'^0x[0-9a-fA-F]{40}$'),
            'account_name': re.compile(r'^[A-Za-z0-9_.-]{1,64}$'),
            'hex': re.compile(r'^(?:[0-9a-fA-F]{2})+$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE)
        }

    def sanitize_string(self, input_str, max_length=255):
        if not isinstance(input_str, str):
            raise InvalidParameters("Input must be a string")
        if len(input_str) > max_length:
            input_str = input_str[:max_length]

        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)
        sanitized = bleach.clean(sanitized, tags=self.allowed_html_tags,
                                 attributes=self.allowed_html_attributes, strip=True)
        # bleach escapes what it keeps; undo that before escaping once
        sanitized = html.escape(html.unescape(sanitized))
        return sanitized.strip()

    def validate_identity(self, identity):
        return isinstance(identity, str) and bool(
            self.patterns['address'].match(identity) or self.patterns['account_name'].match(identity))

    def require_identity(self, identity, field='account'):
        if not self.validate_identity(identity):
            raise InvalidParameters(f"Invalid {field}: {identity!r}")
        return identity

    def require_int(self, value, field):
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise InvalidParameters(f"{field} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidParameters(f"{field} must be an integer")

    def validate_proposal_data(self, data):
        if not isinstance(data, dict):
            raise InvalidParameters("Proposal data must be a JSON object")

        required_fields = ['title', 'description', 'option_count', 'duration']
        for field in required_fields:
            if field not in data:
                raise InvalidParameters(f"Missing required proposal field: {field}")

        return {
            'title': self.sanitize_string(data['title'], max_length=200),
            'description': self.sanitize_string(data['description'], max_length=5000),
            'option_count': self.require_int(data['option_count'], 'option_count'),
            'duration': self.require_int(data['duration'], 'duration'),
            'strategy': data.get('strategy', 0),
            'min_quorum': self.require_int(data.get('min_quorum', 1), 'min_quorum'),
        }

    def validate_vote_data(self, vote_data):
        if not isinstance(vote_data, dict):
            raise InvalidParameters("Vote data must be a JSON object")

        for field in ('ciphertext', 'proof'):
            if field not in vote_data:
                raise InvalidParameters(f"Missing required vote field: {field}")

        ciphertext = vote_data['ciphertext']
        if not isinstance(ciphertext, str) or not self.patterns['hex'].match(ciphertext):
            raise InvalidParameters("Ciphertext must be a hex string")

        proof = vote_data['proof']
        if not isinstance(proof, dict):
            raise InvalidParameters("Proof must be a JSON object")
        for field in ('contract_address', 'user_address', 'upper_bound', 'signature'):
            if field not in proof:
                raise InvalidParameters(f"Missing required proof field: {field}")
        self.require_int(proof['upper_bound'], 'upper_bound')

        return EncryptedInput.from_dict(vote_data)
