# invoicer/cli.py
"""Interactive command line front end for the invoicing API."""

import argparse
import re
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, List, Optional

from invoicer.client import ApiClientError, CliConfig, InvoiceAPI, load_config, save_config
from invoicer.config import VERSION
from invoicer.formatting import format_currency

EMAIL_PATTERN = re.compile(r"^[^@]+@[^@]+\.[^@]+$")
RULE = "━" * 30


class CliAbort(Exception):
    pass


def prompt(
    message: str,
    default: Optional[str] = None,
    validate: Optional[Callable[[str], Optional[str]]] = None,
) -> str:
    """Ask until validate returns None; validate returns the error text otherwise."""
    suffix = f" ({default})" if default is not None else ""
    while True:
        try:
            answer = input(f"{message}{suffix}: ").strip()
        except EOFError as e:
            raise CliAbort("Input closed") from e
        if not answer and default is not None:
            answer = default
        error = validate(answer) if validate else None
        if error is None:
            return answer
        print(f"  {error}")


def required(value: str) -> Optional[str]:
    return None if value else "Required"


def valid_email(value: str) -> Optional[str]:
    return None if EMAIL_PATTERN.match(value) else "Valid email required"


def positive_number(value: str) -> Optional[str]:
    try:
        return None if float(value) > 0 else "Must be positive"
    except ValueError:
        return "Must be a number"


def nickname_for(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def invoice_filename(issue_date: str, description: str) -> str:
    clean = re.sub(r"[^a-z0-9\s]", "", description.lower())
    clean = re.sub(r"\s+", "-", clean)[:20]
    return f"invoice-{issue_date}-{clean}.pdf"


def format_status(status: str) -> str:
    return "PAID" if status == "paid" else "DUE "


def ensure_setup(config: CliConfig) -> None:
    if not config.api_key:
        raise CliAbort("Not configured yet! Run: invoice setup")


class Commands:
    def __init__(self, config: CliConfig, config_file: Optional[Path] = None, api_factory=InvoiceAPI):
        self.config = config
        self.config_file = config_file
        self.api_factory = api_factory

    def api(self) -> InvoiceAPI:
        return self.api_factory(self.config)

    def save(self) -> None:
        save_config(self.config, self.config_file)

    def setup(self, args) -> int:
        print("Invoice CLI Setup\n")
        name = prompt("Your name", validate=required)
        email = prompt("Your email", validate=valid_email)
        company_name = prompt("Your business name", validate=required)
        company_address = prompt("Business address", validate=required)
        currency = prompt("Default currency", default="USD", validate=lambda v: None if len(v) == 3 else "3-letter code")

        with self.api() as api:
            result = api.create_user({
                "name": name,
                "email": email,
                "defaults": {
                    "seller": {"name": company_name, "address": company_address, "email": email},
                    "currency": currency.upper(),
                    "notes": "Thank you for your business!",
                },
            })

        self.config.api_key = result["apiKey"]
        self.config.user = result["user"]
        self.save()
        print("\nSetup complete!\n\nCreate your first invoice:\n  invoice new")
        return 0

    def select_folder(self, client: Optional[str] = None) -> str:
        folders = self.config.folders
        if client:
            folder = folders.get(client.lower())
            if folder:
                print(f"Using client: {folder['name']}")
                return folder["id"]
            print(f'Client "{client}" not found. Available:')
            for key in folders:
                print(f"  {key}")
            print()

        if not folders:
            print("No clients found. Adding one...")
            return self.create_quick_folder()

        if len(folders) == 1:
            folder = next(iter(folders.values()))
            print(f"Using client: {folder['name']}")
            return folder["id"]

        default = self.config.default_folder
        if default and default in folders:
            print(f"Using default client: {folders[default]['name']}")
            return folders[default]["id"]

        entries = list(folders.values())
        for index, folder in enumerate(entries, start=1):
            print(f"  {index}. {folder['name']} ({folder['company']})")
        choice = prompt(
            "Select client",
            default="1",
            validate=lambda v: None if v.isdigit() and 1 <= int(v) <= len(entries) else "Pick a number from the list",
        )
        return entries[int(choice) - 1]["id"]

    def create_quick_folder(self) -> str:
        client_name = prompt("Client name", validate=required)
        company = prompt("Company abbreviation (for invoice IDs)", validate=required).upper()
        email = prompt("Client email", validate=valid_email)

        with self.api() as api:
            folder = api.create_folder({
                "name": client_name,
                "company": company,
                "defaults": {"buyer": {"name": client_name, "address": "Address on file", "email": email}},
            })

        nickname = nickname_for(client_name)
        self.config.folders[nickname] = folder
        self.config.default_folder = nickname
        self.save()
        print(f"Client added: {client_name}")
        return folder["id"]

    def new(self, args) -> int:
        ensure_setup(self.config)
        folder_id = self.select_folder(args.client)

        description = args.description or prompt("Work description", default="Consulting services", validate=required)
        if args.amount is not None:
            quantity, rate = 1.0, args.amount
        else:
            quantity = float(prompt("Quantity (hours/units)", default="1", validate=positive_number))
            rate = float(prompt("Rate per unit", validate=positive_number))
        status = args.status or prompt(
            "Status [due/paid]", default="due", validate=lambda v: None if v in ("due", "paid") else "due or paid"
        )

        quick = self.config.quick_defaults
        issue_date = date.today()
        due_date = issue_date + timedelta(days=quick.due_in_days)

        with self.api() as api:
            response = api.create_invoice(folder_id, {
                "items": [{"description": description, "qty": quantity, "unit": rate, "tax": quick.default_tax_rate}],
                "issueDate": issue_date.isoformat(),
                "dueDate": due_date.isoformat(),
                "status": status,
                "taxRate": quick.default_tax_rate,
                "discountRate": quick.default_discount_rate,
            })

        filename = Path(invoice_filename(issue_date.isoformat(), description))
        filename.write_bytes(response.content)

        currency = (self.config.user or {}).get("defaults", {}).get("currency", "USD")
        print("\nInvoice created!")
        if response.headers.get("X-Invoice-Id"):
            print(f"Invoice: {response.headers['X-Invoice-Id']}")
        print(f"PDF:     {filename.resolve()}")
        print(f"Total:   {format_currency(quantity * rate, currency)}")
        print(f"Status:  {format_status(status).strip()}")
        print(f"Due:     {due_date.isoformat()}")
        if status == "due":
            print("\nTip: mark as paid later with:\n  invoice paid <invoice-id>")
        return 0

    def list_invoices(self, args) -> int:
        ensure_setup(self.config)
        with self.api() as api:
            invoices = api.list_invoices(args.limit)["invoices"]

        print(f"{len(invoices)} recent invoices")
        if not invoices:
            print("\nNo invoices yet.\nCreate one: invoice new")
            return 0

        print()
        for invoice in invoices:
            created = invoice["createdAt"][:10]
            print(f"{format_status(invoice['status'])} {invoice['id']} {created}")
            print(f"  {invoice['buyer']} • {format_currency(invoice['total'], invoice['currency'])}")
        print("\nMark as paid: invoice paid <id>")
        return 0

    def set_status(self, args) -> int:
        ensure_setup(self.config)
        with self.api() as api:
            invoice = api.update_invoice_status(args.invoice_id, args.status)

        print(f"Marked as {args.status.upper()}")
        print(f"Invoice: {invoice['id']}")
        print(f"Total:   {format_currency(invoice['total'], invoice['currency'])}")
        return 0

    def get(self, args) -> int:
        ensure_setup(self.config)
        with self.api() as api:
            pdf_bytes = api.get_invoice_pdf(args.invoice_id)

        filename = Path(args.output or f"{args.invoice_id}.pdf")
        filename.write_bytes(pdf_bytes)
        print(f"PDF: {filename.resolve()}")
        return 0

    def stats(self, args) -> int:
        ensure_setup(self.config)
        with self.api() as api:
            stats = api.get_stats()

        total = stats["totalInvoices"]
        paid = stats["totalPaidInvoices"]
        unpaid = total - paid

        print(f"Business Overview\n{RULE}")
        print(f"Total Invoices: {total:,}")
        print(f"Paid:           {paid:,}")
        print(f"Unpaid:         {unpaid:,}")
        if total > 0:
            print(f"Payment Rate:   {paid / total * 100:.0f}%")

        print(f"\nRevenue (Paid Only)\n{RULE}")
        breakdown = stats["currencyBreakdown"]
        if not breakdown:
            print("No revenue yet (no paid invoices)")
            return 0
        for currency, amount in breakdown.items():
            print(format_currency(amount, currency))
        if unpaid > 0:
            print(f"\n{unpaid} unpaid invoices - follow up for more revenue!")
        return 0

    def search(self, args) -> int:
        ensure_setup(self.config)
        with self.api() as api:
            result = api.search(args.query)

        print(f"{result['count']} matching invoices")
        for invoice in result["invoices"]:
            print(f"{format_status(invoice['status'])} {invoice['id']}  {invoice['buyer']} • "
                  f"{format_currency(invoice['total'], invoice['currency'])}")
        return 0

    def clients(self, args) -> int:
        ensure_setup(self.config)
        if not self.config.folders:
            print("No clients yet.\nAdd one by creating an invoice: invoice new")
            return 0

        print(f"Your Clients\n{RULE}")
        for nickname, folder in self.config.folders.items():
            marker = "●" if self.config.default_folder == nickname else "○"
            print(f"{marker} {nickname} - {folder['name']} ({folder['company']})")
        print("\nUse client nickname: invoice new -c <nickname>")
        return 0

    def settings(self, args) -> int:
        quick = self.config.quick_defaults
        changed = False
        if args.due_days is not None:
            quick.due_in_days = args.due_days
            print(f"Due days: {args.due_days}")
            changed = True
        if args.tax_rate is not None:
            quick.default_tax_rate = args.tax_rate
            print(f"Tax rate: {args.tax_rate}%")
            changed = True
        if args.discount_rate is not None:
            quick.default_discount_rate = args.discount_rate
            print(f"Discount rate: {args.discount_rate}%")
            changed = True
        if args.url:
            self.config.api_url = args.url
            print(f"API URL: {args.url}")
            changed = True

        if changed:
            self.save()
            return 0

        print(f"Current Settings\n{RULE}")
        print(f"API URL:       {self.config.api_url}")
        print(f"Due in days:   {quick.due_in_days}")
        print(f"Tax rate:      {quick.default_tax_rate}%")
        print(f"Discount rate: {quick.default_discount_rate}%")
        user = self.config.user
        if user:
            print(f"\nYour Account\n{RULE}")
            print(f"Name:     {user.get('name')}")
            print(f"Email:    {user.get('email')}")
            print(f"Business: {user.get('defaults', {}).get('seller', {}).get('name')}")
        return 0

    def welcome(self) -> int:
        print("Invoice CLI\n")
        if not self.config.api_key:
            print("First time here?\n  invoice setup   - one-time account setup")
        elif not self.config.folders:
            print("Ready to create your first invoice?\n  invoice new     - create invoice (adds client automatically)")
        else:
            print("Ready to invoice!")
            print("  invoice new     - create new invoice")
            print("  invoice list    - view recent invoices")
            print("  invoice stats   - check your revenue")
        print("\nAll commands: invoice --help")
        return 0


def rate(value: str) -> float:
    number = float(value)
    if not 0 <= number <= 100:
        raise argparse.ArgumentTypeError("must be between 0 and 100")
    return number


def build_parser(commands: Commands) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="invoice", description="Ultra-fast invoice creation")
    parser.add_argument("--version", action="version", version=VERSION)
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("setup", help="One-time setup")
    p.set_defaults(func=commands.setup)

    p = sub.add_parser("new", aliases=["create"], help="Create new invoice")
    p.add_argument("-c", "--client", help="Client nickname (skip selection)")
    p.add_argument("-a", "--amount", type=float, help="Total amount")
    p.add_argument("-d", "--description", help="Work description")
    p.add_argument("-s", "--status", choices=["due", "paid"], help="Initial status")
    p.set_defaults(func=commands.new)

    p = sub.add_parser("list", aliases=["ls"], help="List recent invoices")
    p.add_argument("-l", "--limit", type=int, default=10, help="Number to show")
    p.set_defaults(func=commands.list_invoices)

    p = sub.add_parser("paid", help="Mark invoice as paid")
    p.add_argument("invoice_id")
    p.set_defaults(func=commands.set_status, status="paid")

    p = sub.add_parser("due", help="Mark invoice as due again")
    p.add_argument("invoice_id")
    p.set_defaults(func=commands.set_status, status="due")

    p = sub.add_parser("get", help="Download invoice PDF")
    p.add_argument("invoice_id")
    p.add_argument("-o", "--output", help="Output filename")
    p.set_defaults(func=commands.get)

    p = sub.add_parser("stats", help="Revenue stats")
    p.set_defaults(func=commands.stats)

    p = sub.add_parser("search", help="Search invoices by buyer, seller or id")
    p.add_argument("query")
    p.set_defaults(func=commands.search)

    p = sub.add_parser("clients", help="List client nicknames")
    p.set_defaults(func=commands.clients)

    p = sub.add_parser("config", help="Settings")
    p.add_argument("--due-days", type=int, help="Default days until due")
    p.add_argument("--tax-rate", type=rate, help="Default tax rate (%%)")
    p.add_argument("--discount-rate", type=rate, help="Default discount rate (%%)")
    p.add_argument("--url", help="Change API URL")
    p.set_defaults(func=commands.settings)

    return parser


def main(argv: Optional[List[str]] = None, config_file: Optional[Path] = None, api_factory=InvoiceAPI) -> int:
    config = load_config(config_file)
    commands = Commands(config, config_file, api_factory)
    parser = build_parser(commands)
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        return commands.welcome()

    try:
        return args.func(args)
    except ApiClientError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        for detail in e.details:
            print(f"  - {detail.get('field') or ''} {detail.get('message', '')}".rstrip(), file=sys.stderr)
        return 1
    except CliAbort as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
