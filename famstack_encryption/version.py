"""FamStack Encryption Meta information.
   FamStack Encryption turns integration secrets into envelope ciphertext
   that can be stored in a shared database and read back after key rotation.
"""
__title__ = 'famstack_encryption'
__description__ = (
   'Envelope encryption and key management for FamStack '
   'integration secrets.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 FamStack'
__author__ = 'FamStack Developers'
__author_email__ = 'dev@famstack.app'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/famstack/famstack-encryption'
