from __future__ import annotations

import pytest

HEADER = (
    "  sl  local_address rem_address   st tx_queue rx_queue tr tm->when retrnsmt"
    "   uid  timeout inode"
)
HEADER6 = (
    "  sl  local_address                         remote_address                        st"
    " tx_queue rx_queue tr tm->when retrnsmt   uid  timeout inode"
)


def make_row(local: str, remote: str, state: str = "01", sl: int = 0) -> str:
    """one kernel table row with realistic trailing columns"""
    return (
        f"  {sl:>3}: {local} {remote} {state} 00000000:00000000 00:00000000 00000000"
        f"  1000        0 {40000 + sl} 1 0000000000000000 20 4 30 10 -1"
    )


def make_table(*rows: str, header: str = HEADER) -> str:
    return "\n".join([header, *rows]) + "\n"


@pytest.fixture
def tcp4_text() -> str:
    """IPv4 table: two peers on 6789, one duplicate, one non-established, one unwatched port"""
    return make_table(
        make_row("0100007F:1A85", "01020304:0050", sl=0),  # 4.3.2.1 -> 6789
        make_row("0100007F:1A85", "0101A8C0:D431", sl=1),  # 192.168.1.1 -> 6789
        make_row("0100007F:1A85", "01020304:0051", sl=2),  # 4.3.2.1 again, other source port
        make_row("0100007F:1A85", "08080808:0035", "06", sl=3),  # TIME_WAIT
        make_row("0100007F:0016", "0A00000A:E29A", sl=4),  # port 22, not watched
    )


@pytest.fixture
def tcp6_text() -> str:
    """IPv6 table: one peer on 6789 and one on 443"""
    return make_table(
        make_row(
            "00000000000000000000000000000000:1A85",
            "20010DB8000000000000000000000001:C350",
            sl=0,
        ),
        make_row(
            "00000000000000000000000000000000:01BB",
            "20010DB8000000000000000000000002:C351",
            sl=1,
        ),
        header=HEADER6,
    )
