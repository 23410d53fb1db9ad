from django.core.management.base import BaseCommand

from apps.negotiations.store import expire_invitations


class Command(BaseCommand):
    help = "Cancel pending invitations whose expiry date has passed."

    def handle(self, *args, **options):
        count = expire_invitations()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} invitation(s)"))
