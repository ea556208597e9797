import os

# Secrets and passcodes come from the environment; the defaults are for local use only.
#   export SECRET_KEY='a_very_secret_random_string'
#   export ADMIN_PASSCODE='ga_passcode'
#   export JGA_PASSCODE='jga_passcode'

SECRET_KEY = os.environ.get('SECRET_KEY', 'default-secret-key-for-dev')
ADMIN_PASSCODE = os.environ.get('ADMIN_PASSCODE', 'secons@ga')
JGA_PASSCODE = os.environ.get('JGA_PASSCODE', 'secons@jga')
TIMEZONE = os.environ.get('TIMEZONE', 'Asia/Kolkata')
DATABASE = os.environ.get('DATABASE', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'db', 'secons.db'))

# Scheduled matches past their start time are moved to live at most this often
AUTO_LIVE_INTERVAL_SECONDS = int(os.environ.get('AUTO_LIVE_INTERVAL_SECONDS', '60'))
PUBLIC_POLL_INTERVAL_SECONDS = int(os.environ.get('PUBLIC_POLL_INTERVAL_SECONDS', '30'))
OPERATOR_POLL_INTERVAL_SECONDS = int(os.environ.get('OPERATOR_POLL_INTERVAL_SECONDS', '5'))
MATCH_LIST_LIMIT = int(os.environ.get('MATCH_LIST_LIMIT', '20'))
