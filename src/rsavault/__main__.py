"""The Command Line Interface for the vault, including Interactive elements.

Same hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface) approach as always: anything the
command line leaves out is asked for interactively, unless non-interactive mode is on, in which case defaults are
used or the run fails.

Typical usage example:

    rsavault --db keys.db generate -u alice --keysize 2048
    rsavault --db keys.db encrypt -u alice --message "Hi there!"
    OR
    python -m rsavault
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import pathlib
import sys
import typing

import rsavault
from rsavault.errors import RSAVaultError


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Type = str
    choices: list[str] | None = None
    default: typing.Any = None
    advanced: bool = False


help_dict: dict[str, HelpData] = {
    "subcommand":
        HelpData(
            description="The available subcommands in RSA Vault.",
            choices=["generate", "encrypt", "decrypt", "export", "import", "list"],
        ),
    "generate":
        HelpData("Generate a new key pair for a user."),
    "encrypt":
        HelpData("Encrypt a message for a user."),
    "decrypt":
        HelpData("Decrypt a message addressed to a user."),
    "export":
        HelpData("Export a user's public or private key."),
    "import":
        HelpData("Import a public or private key for a user."),
    "list":
        HelpData("List all keys in the database."),
    "db":
        HelpData(
            description="Location of the key database file.",
            format=pathlib.Path,
        ),
    "user":
        HelpData(description="The user the action is for."),
    "message":
        HelpData(
            description="Message or path to file containing payload. If Path start with `P:`",
            format=str,
        ),
    "key":
        HelpData(
            description="Armored key or path to file containing it. If Path start with `P:`",
            format=str,
        ),
    "kind":
        HelpData(
            description="Which half of the key pair.",
            choices=["public", "private"],
            default="public",
        ),
    "keysize":
        HelpData(
            description="Key size (in bits).",
            choices=[str(int(size)) for size in rsavault.KeySize],
            default="2048",
        ),
    "output":
        HelpData(
            description="Write the result to this file instead of standard output. Must not exist.",
            format=pathlib.Path,
            advanced=True,
            default="",
        ),
}

needs = {
    "generate": ("user", "keysize"),
    "encrypt": ("user", "message", "output"),
    "decrypt": ("user", "message", "output"),
    "export": ("user", "kind"),
    "import": ("user", "kind", "key"),
    "list": (),
}

users = argparse.ArgumentParser(add_help=False)
users.add_argument("--user", "-u", type=help_dict["user"].format, help=help_dict["user"].description)
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--message", "-m", type=help_dict["message"].format, help=help_dict["message"].description)
outputs = argparse.ArgumentParser(add_help=False)
outputs.add_argument("--output", "-o", type=help_dict["output"].format, help=help_dict["output"].description)
kinds = argparse.ArgumentParser(add_help=False)
kinds.add_argument("--kind", "-k", choices=help_dict["kind"].choices, help=help_dict["kind"].description)
corep = argparse.ArgumentParser(prog="rsavault")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsavault.__version__}")
corep.add_argument("--db", type=help_dict["db"].format, help=help_dict["db"].description)
corep.add_argument("--non-interactive", "-n", action="store_true", help="Enable non-interactive mode")
corep.add_argument("--advanced", "-a", action="store_true", help="Enable advanced mode, for interactive mode")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

generate = commands.add_parser("generate", parents=[users], help=help_dict["generate"].description)
generate.add_argument("--keysize", choices=help_dict["keysize"].choices, help=help_dict["keysize"].description)
encrypt = commands.add_parser("encrypt", parents=[users, payloads, outputs], help=help_dict["encrypt"].description)
decrypt = commands.add_parser("decrypt", parents=[users, payloads, outputs], help=help_dict["decrypt"].description)
export = commands.add_parser("export", parents=[users, kinds], help=help_dict["export"].description)
importer = commands.add_parser("import", parents=[users, kinds], help=help_dict["import"].description)
importer.add_argument("--key", type=help_dict["key"].format, help=help_dict["key"].description)
listing = commands.add_parser("list", help=help_dict["list"].description)


def checkmodes(arg: str, mode: tuple[bool, bool]):
    helper_data = help_dict[arg]
    if (mode[0] or (helper_data.advanced and not mode[1])) and helper_data.default is not None:
        return helper_data.default
    if mode[0]:
        raise IOError(f"Argument {arg} is missing and non-interactive mode is active.")
    return helper_data


def choice_handler(arg: str, mode: tuple[bool, bool], prntr: typing.Callable = print):
    helper_data = checkmodes(arg, mode)
    if not isinstance(helper_data, HelpData):
        return helper_data
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    choices = helper_data.choices
    vald = set(choices)
    for choice in choices:
        defstring = " (Default)" if choice == helper_data.default else ""
        if help_dict.get(choice, None):
            prntr(f"{choice} - {help_dict[choice].description}" + defstring)
        else:
            prntr(f"{choice}" + defstring)
    if helper_data.default is not None:
        prntr("To accept default just click enter. Otherwise specify value.")
    while True:
        ch = input(f"{arg}: ")
        if ch in vald:
            return ch
        if not ch and helper_data.default is not None:
            return helper_data.default
        prntr("Please select an option from the list.")


def input_handler(arg: str, mode: tuple[bool, bool], prntr: typing.Callable = print):
    helper_data = checkmodes(arg, mode)
    if not isinstance(helper_data, HelpData):
        return helper_data
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    if helper_data.default is not None:
        prntr(f"Default value: {helper_data.default}")
        prntr("To accept default just click enter. Otherwise specify value.")
    cls = helper_data.format
    while True:
        ch = input(f"{arg}: ")
        if not ch and helper_data.default is not None:
            return helper_data.default
        if ch == "":
            prntr("Please provide a value.")
            continue
        try:
            return cls(ch)
        except ValueError:
            prntr(f"We could not convert your value to {cls.__name__}.")


def check_message(mess: str) -> bytes:
    """Parse message for path-notice. Files are read as raw bytes."""
    if mess.startswith("P:"):
        with open(mess[2:], "rb") as f:
            return f.read()
    return mess.encode("utf-8")


def emit(data: bytes, output: pathlib.Path | str) -> None:
    """Write `data` to `output`, or standard output if empty. Refuses to overwrite."""
    if output:
        with open(output, "xb") as f:
            f.write(data)
        return
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


def run(args: argparse.Namespace, vault: rsavault.KeyVault, pspr: typing.Callable) -> None:
    """Executes one subcommand against an open vault."""
    match args.subcommand:
        case "generate":
            pspr(f"Hold on, generating a {args.keysize} bit key for {args.user}...")
            vault.create(args.user, int(args.keysize))
            pspr(f"User {args.user} with public/private keys added to database!")
        case "encrypt":
            ciph = vault.encrypt(args.user, check_message(args.message))
            emit((rsavault.armor_message(ciph) + "\n").encode("ascii"), args.output)
        case "decrypt":
            text = check_message(args.message).decode("ascii")
            emit(vault.decrypt(args.user, rsavault.dearmor_message(text)), args.output)
        case "export":
            private = args.kind == "private"
            label = "RSA PRIVATE KEY" if private else "RSA PUBLIC KEY"
            print(rsavault.armor(label, vault.export(args.user, private)))
        case "import":
            text = check_message(args.key).decode("ascii")
            if args.kind == "private":
                vault.import_private(args.user, rsavault.dearmor(text, "RSA PRIVATE KEY"))
            else:
                vault.import_public(args.user, rsavault.dearmor(text, "RSA PUBLIC KEY"))
            pspr(f"Imported {args.kind} key for {args.user}.")
        case "list":
            for user, record in vault.list_keys():
                kind = "public/private" if record.has_private else "public"
                print(f"{user}: {int(record.size)} bits ({kind})")


def collect(args: argparse.Namespace, pstatus: tuple[bool, bool], pspr: typing.Callable) -> None:
    """Fills in every argument the subcommand needs, prompting where allowed."""
    if args.db is None:
        args.db = input_handler("db", pstatus)
    if not args.subcommand:
        args.subcommand = choice_handler("subcommand", pstatus)
    for reqs in needs[args.subcommand]:
        if getattr(args, reqs, None) is None:
            if help_dict[reqs].choices is not None:
                res = choice_handler(reqs, pstatus, pspr)
            else:
                res = input_handler(reqs, pstatus, pspr)
            setattr(args, reqs, res)
        else:
            pspr(f"{reqs}: {getattr(args, reqs)}")


def main():
    """Core Hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface)"""
    args = corep.parse_args()
    pstatus = (args.non_interactive, args.advanced)

    def pspr(text: str):
        """Print only if not in non-interactive mode."""
        if not pstatus[0]:
            print(text, file=sys.stderr)

    pspr("Welcome to RSA Vault!\n")
    try:
        collect(args, pstatus, pspr)
        pspr("\nInput Complete! Executing...")
        vault = rsavault.KeyVault(rsavault.KeyDatabase(args.db))
        run(args, vault, pspr)
        vault.save()
    except (RSAVaultError, OSError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    pspr("Thank you for using RSA Vault!")
    pspr("Goodbye!")


if __name__ == "__main__":
    main()
