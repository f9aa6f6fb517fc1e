from __future__ import annotations

import re

USERNAME_TOKEN = "%u"
BASE_DN_TOKEN = "%b"

_TOKEN_RE = re.compile("%u|%b")


def expand(template: str, username: str, base_dn: str) -> str:
    """Fill a bind DN / search filter template.

    `%u` becomes the username and `%b` the base DN, in a single pass (inserted text is
    not scanned again). Nothing is escaped: the result is directory input, so a username
    containing `,` `(` `)` or `*` changes its structure.
    """
    repl = {USERNAME_TOKEN: username or "", BASE_DN_TOKEN: base_dn or ""}
    return _TOKEN_RE.sub(lambda m: repl[m.group(0)], template or "")
