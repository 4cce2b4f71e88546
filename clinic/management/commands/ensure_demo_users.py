from django.core.management.base import BaseCommand

from clinic.services.accounts import DEMO_ACCOUNTS, DEMO_PASSWORD, ensure_demo_account


class Command(BaseCommand):
    help = f"Create or repair the demo doctor and patient (password={DEMO_PASSWORD}, profile reset). Idempotent."

    def handle(self, *args, **opts):
        for email in DEMO_ACCOUNTS:
            user = ensure_demo_account(email, repair=True)
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({user.user_type})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
