"""op-session Meta information.
   op-session drives the 1Password CLI on behalf of application code.
"""
__title__ = 'op_session'
__description__ = (
   'Typed access to 1Password credentials through the op CLI, '
   'with per-process session handling.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
