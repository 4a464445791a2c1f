"""VaultLock Meta information.
   VaultLock keeps a password-wrapped data key per account and exposes it
   only while the vault is unlocked.
"""
__title__ = 'vaultlock'
__description__ = (
   'Password-wrapped, session-cached data-encryption keys '
   'for client-side encrypted applications.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 VaultLock Authors'
__author__ = 'VaultLock Authors'
__author_email__ = 'maintainers@vaultlock.dev'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/vaultlock/vaultlock'
