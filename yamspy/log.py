"""Logging helpers.

Besides the standard levels, yamspy reports solver iterations and other
numerical diagnostics on a dedicated ``NUMERICS`` level that sits between
``DEBUG`` and ``INFO``. Use :func:`scattering_logger` to obtain a logger with
the additional :meth:`numerics` method.
"""

import logging

NUMERICS = 15

logging.addLevelName(NUMERICS, "NUMERICS")


def _numerics(self, message, *args, **kwargs):
    if self.isEnabledFor(NUMERICS):
        self._log(NUMERICS, message, args, **kwargs)


logging.Logger.numerics = _numerics


def scattering_logger(name: str) -> logging.Logger:
    """Return the logger ``name`` with the ``NUMERICS`` level enabled.

    Parameters
    ----------
    name:
        Logger name, usually ``__name__`` of the calling module.

    Returns
    -------
    logging.Logger
        Logger providing ``numerics(...)`` in addition to the standard methods.
    """
    return logging.getLogger(name)
