from django.core.management.base import BaseCommand, CommandError

from SmartLearnApp.core.exceptions import ProfileNotFound
from SmartLearnApp.users.directory import mark_email_verified

class Command(BaseCommand):
    help = "Mark a profile's email address as verified."

    def add_arguments(self, parser):
        parser.add_argument("email")

    def handle(self, *args, **options):
        try:
            profile = mark_email_verified(options["email"])
        except ProfileNotFound as exc:
            raise CommandError(str(exc.detail)) from exc
        self.stdout.write(self.style.SUCCESS(f"Verified {profile.email}"))
