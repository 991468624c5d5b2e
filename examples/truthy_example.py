"""
Example: Truthiness checks for a signup form

This example shows the truthiness rules on everyday values, how results
and optionals delegate to their payload, the opt-in combinators for
defaults, and truthy expressions compiled once at import time.
"""

import logging
from dataclasses import dataclass

from truthy import (
    Err,
    LoggingHook,
    Ok,
    Some,
    compile_expression,
    is_truthy,
    rewrite,
    truthy_or,
    truthy_or_else,
    use_config,
    use_tracing,
)

# =============================================================================
# Domain model
# =============================================================================


@dataclass(frozen=True)
class Signup:
    email: str = ""
    phone: str = ""
    tags: tuple = ()
    referrals: int = 0
    captcha: Ok | Err | None = None

    def is_truthy(self) -> bool:
        """A signup counts only if it can be contacted."""
        return is_truthy(self.email) or is_truthy(self.phone)


# =============================================================================
# 1. Rules per shape
# =============================================================================

samples = [
    0,
    -0.0,
    -3,
    "",
    " ",
    None,
    Some(False),
    Ok(0),
    Err("captcha expired"),
    Err(""),
    [0, "", None],
    [],
    (),
    (0, "", None),
]


# =============================================================================
# 2. Truthy expressions, validated at import
# =============================================================================

# Leaves are checked with is_truthy(); && binds tighter than ||
can_submit = compile_expression(
    """
    (email || phone)    # reachable
    && captcha          # a truthy captcha result, even an Err with a reason
    && !blocked
    """,
    names={"email", "phone", "captcha", "blocked"},
)

needs_review = compile_expression("referrals && !tags || flagged")


# =============================================================================
# Run examples
# =============================================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # --- 1. Rules per shape ---
    print("=== 1. Rules per Shape ===\n")
    for value in samples:
        print(f"  {value!r:28s} -> {is_truthy(value)}")

    # --- 2. Custom shapes ---
    print("\n=== 2. Custom Shapes (is_truthy method) ===\n")
    for signup in [Signup(), Signup(phone="555-0100")]:
        print(f"  {signup!r} -> {is_truthy(signup)}")

    # --- 3. Combinators ---
    print("\n=== 3. Combinators (opt-in) ===\n")
    with use_config(enable_combinators=True):
        for name in ["", "ada"]:
            print(f"  truthy_or({name!r}, 'anonymous') -> {truthy_or(name, 'anonymous')}")
        print(f"  truthy_or_else(0, lambda: 10) -> {truthy_or_else(0, lambda: 10)}")

    # --- 4. Rewriting ---
    print("\n=== 4. Rewriting ===\n")
    print(f"  {needs_review.text!r}")
    print(f"  -> {rewrite(needs_review.text)}")

    # --- 5. Evaluation ---
    print("\n=== 5. Evaluation ===\n")
    form = {"email": "", "phone": "555-0100", "captcha": Ok(True), "blocked": 0}
    print(f"  can_submit({form}) -> {can_submit(form)}")

    with use_tracing(LoggingHook(logging.getLogger("signup"))):
        can_submit(form, captcha=Err(""))
