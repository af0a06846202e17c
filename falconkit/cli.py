# MIT License © 2025 Motohiro Suzuki
"""
falconkit command-line runner.

    falconkit info
    falconkit seed
    falconkit keypair --seed HEX
    falconkit passphrase --passphrase P --salt S --iterations N
    falconkit child --seed HEX --index N
    falconkit sign --seed HEX --message M
    falconkit verify --public-key HEX --message M --signature HEX

Byte arguments (messages, passphrases, salts) accept '@path', 'hex:HEX',
or a UTF-8 literal. A bare value is always the literal: '--message cafe'
signs b"cafe". Output is hex on stdout.

Exit codes: 0 ok, 1 invalid input or backend error, 2 signature did not verify.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from falconkit.provider.config import BACKEND_AUTO, BACKEND_FALLBACK, ProviderConfig
from falconkit.provider.errors import InvalidInput, NativeCallFailed
from falconkit.provider.selector import FalconProvider

logger = logging.getLogger("falconkit.cli")


# ---------------- helpers ----------------

def _read_bytes_source(source: str) -> bytes:
    """
    Parse '@path', 'hex:HEX' or a literal into bytes.
    """
    s = source.strip()
    if not s:
        return b""

    if s.startswith("@"):
        with open(s[1:], "rb") as f:
            return f.read()

    if s.startswith("hex:"):
        return _hex_arg("hex value", s[4:])

    return s.encode("utf-8")


def _hex_arg(name: str, s: str) -> bytes:
    try:
        return bytes.fromhex(s.strip())
    except ValueError as e:
        raise InvalidInput(f"{name} must be hex") from e


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="falconkit",
        description="Falcon-512 seed derivation and signing (native or fallback backend)",
    )
    ap.add_argument("--backend", choices=(BACKEND_AUTO, BACKEND_FALLBACK), default=None,
                    help="auto: try native library first (default); fallback: never load it")
    ap.add_argument("--lib", default=None, help="Path to the native Falcon shared library")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log backend selection details")

    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("info", help="Show the selected backend and constants")
    sub.add_parser("seed", help="Generate a random 48-byte root seed")

    p_kp = sub.add_parser("keypair", help="Materialize a keypair from a seed")
    p_kp.add_argument("--seed", required=True, help="Seed (hex, >= 48 bytes)")

    p_pw = sub.add_parser("passphrase", help="Stretch a passphrase into a seed")
    p_pw.add_argument("--passphrase", required=True, help="@path, hex:HEX, or literal")
    p_pw.add_argument("--salt", required=True, help="@path, hex:HEX, or literal (>= 8 bytes)")
    p_pw.add_argument("--iterations", type=int, default=1000)

    p_ch = sub.add_parser("child", help="Derive a child seed from a master seed")
    p_ch.add_argument("--seed", required=True, help="Master seed (hex, >= 48 bytes)")
    p_ch.add_argument("--index", type=int, required=True)

    p_sg = sub.add_parser("sign", help="Sign a message with the keypair of a seed")
    p_sg.add_argument("--seed", required=True, help="Seed (hex, >= 48 bytes)")
    p_sg.add_argument("--message", required=True, help="@path, hex:HEX, or literal")

    p_vf = sub.add_parser("verify", help="Verify a signature")
    p_vf.add_argument("--public-key", required=True, help="Public key (hex)")
    p_vf.add_argument("--message", required=True, help="@path, hex:HEX, or literal")
    p_vf.add_argument("--signature", required=True, help="Signature (hex)")

    return ap


def _run(p: FalconProvider, args) -> int:
    if args.cmd == "info":
        c = p.constants
        reason = p.fallback_reason.value if p.fallback_reason is not None else None
        print(f"backend={p.backend_name} fallback={p.is_fallback} reason={reason}")
        print(f"min_seed_length={c.min_seed_length} public_key_length={c.public_key_length} "
              f"secret_key_length={c.secret_key_length} signature_length={c.signature_length}")
        return 0

    if args.cmd == "seed":
        print(p.generate_seed().hex())
        return 0

    if args.cmd == "keypair":
        kp = p.keypair_from_seed(_hex_arg("seed", args.seed))
        print(f"public_key={kp.public_key.hex()}")
        print(f"secret_key={kp.secret_key.hex()}")
        return 0

    if args.cmd == "passphrase":
        seed = p.seed_from_passphrase(
            _read_bytes_source(args.passphrase),
            _read_bytes_source(args.salt),
            args.iterations,
        )
        print(seed.hex())
        return 0

    if args.cmd == "child":
        print(p.derive_child_seed(_hex_arg("seed", args.seed), args.index).hex())
        return 0

    if args.cmd == "sign":
        kp = p.keypair_from_seed(_hex_arg("seed", args.seed))
        print(p.sign(_read_bytes_source(args.message), kp.secret_key).hex())
        return 0

    if args.cmd == "verify":
        ok = p.verify(
            _read_bytes_source(args.message),
            _hex_arg("signature", args.signature),
            _hex_arg("public-key", args.public_key),
        )
        print("OK" if ok else "INVALID")
        return 0 if ok else 2

    raise InvalidInput(f"unknown command: {args.cmd}")


async def _main_async(args) -> int:
    cfg = ProviderConfig.from_env(backend=args.backend, library=args.lib)
    async with FalconProvider(cfg) as p:
        return _run(p, args)


def main(argv: list[str] | None = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_main_async(args))
    except InvalidInput as e:
        print(f"invalid input: {e}", file=sys.stderr)
        return 1
    except NativeCallFailed as e:
        print(f"backend error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"I/O error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
