#!/usr/bin/env python3
"""
Whitelist Commands for MintGate CLI

Build Merkle allowlists from identity files, extract member proofs and
check proofs against a root.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from crypto.merkle import MerkleTree, leaf_for, load_allowlist_proof, parse_hash, verify

from ..context import CLIContext, pass_context, handle_cli_error


def read_identities(path: str) -> List[str]:
    """
    Read identities from a JSON list or a text file with one per line.

    Blank lines and lines starting with ``#`` are skipped.
    """
    text = Path(path).read_text()
    if text.lstrip().startswith('['):
        identities = json.loads(text)
        if not isinstance(identities, list):
            raise click.BadParameter(f"{path} must contain a JSON list")
        return [str(i) for i in identities]

    return [
        line.strip() for line in text.splitlines()
        if line.strip() and not line.strip().startswith('#')
    ]


@click.group()
@pass_context
def whitelist(ctx: CLIContext):
    """
    Whitelist (Merkle allowlist) commands.
    """
    ctx.logger.debug("Whitelist command group invoked")


@whitelist.command('build')
@click.argument('identities_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', type=click.Path(dir_okay=False),
              help='Write the allowlist document (root and proofs) to this file')
@pass_context
@handle_cli_error
def build(ctx: CLIContext, identities_file: str, output: Optional[str]):
    """
    Build a Merkle tree over IDENTITIES_FILE and print its root.

    Examples:
        mintgate whitelist build members.txt --output allowlist.json
    """
    tree = MerkleTree(read_identities(identities_file))
    if output:
        tree.save_allowlist(output)
        ctx.logger.info(f"Allowlist written to {output}")

    ctx.output({
        "root": "0x" + tree.root.hex(),
        "size": len(tree),
        "height": tree.height,
        "output": output,
    })


@whitelist.command('proof')
@click.argument('identities_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('identity')
@pass_context
@handle_cli_error
def proof(ctx: CLIContext, identities_file: str, identity: str):
    """Print the proof of IDENTITY in the tree built from IDENTITIES_FILE."""
    tree = MerkleTree(read_identities(identities_file))
    member_proof = tree.proof_for(identity)
    if member_proof is None:
        raise click.ClickException(f"{identity} is not in {identities_file}")
    ctx.output(member_proof.to_dict())


@whitelist.command('verify')
@click.argument('identity')
@click.option('--root', help='Merkle root (default: the stored collection root)')
@click.option('--proof', 'proof_hashes', multiple=True, help='Proof hash (hex); repeat in path order')
@click.option('--allowlist', type=click.Path(exists=True, dir_okay=False),
              help='Read the proof (and root) from an allowlist document')
@pass_context
@handle_cli_error
def verify_proof(ctx: CLIContext, identity: str, root: Optional[str],
                 proof_hashes: Tuple[str, ...], allowlist: Optional[str]):
    """
    Check whether a proof shows IDENTITY is a member.

    Exits with status 1 when the proof does not verify.
    """
    if allowlist:
        hashes = load_allowlist_proof(allowlist, identity)
        if root is None:
            with open(allowlist) as f:
                root = json.load(f)["root"]
    else:
        hashes = [parse_hash(h) for h in proof_hashes]

    root_bytes = parse_hash(root) if root else ctx.load_controller().merkle_root
    valid = verify(root_bytes, hashes, leaf_for(identity))

    ctx.output({"identity": identity, "root": "0x" + root_bytes.hex(), "valid": valid})
    if not valid:
        ctx.logger.debug(f"Proof for {identity} rejected")
        sys.exit(1)
