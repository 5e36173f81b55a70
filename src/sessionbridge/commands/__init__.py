"""Built-in CLI sub-commands for sessionbridge.

* :mod:`~sessionbridge.commands.session` -- ``login``, ``logout``, and
  ``status``, each run as one popup request against the background context.
* :mod:`~sessionbridge.commands.config` -- view and modify client settings.
"""
