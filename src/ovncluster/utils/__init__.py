"""Address formatting and bounded polling helpers.

The utils layer depends only on the standard library. It has **zero**
imports from ``ovncluster.core`` or ``ovncluster.services``.

Attributes:
    network: Member address parsing and ``proto:host:port`` formatting with
        IPv6 bracketing.
    polling: [poll_until()][ovncluster.utils.polling.poll_until], a bounded
        retry combinator with injectable clock and sleep.
"""
