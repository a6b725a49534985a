from django.contrib.auth.models import User
from django.core.management.base import BaseCommand

from apps.users.models import Profile
from apps.users.roles import derive_role_from_email


class Command(BaseCommand):
    help = 'Create missing role profiles for identities imported without one'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report the roles that would be assigned',
        )

    def handle(self, *args, **options):
        dry_run = options.get('dry_run')
        created = 0

        for user in User.objects.filter(profile__isnull=True).order_by('id'):
            role, block_id = derive_role_from_email(user.email or user.username)
            if role == Profile.Roles.WARDEN and block_id is None:
                self.stdout.write(
                    self.style.WARNING(f'{user.email}: warden without a block number')
                )
            if not dry_run:
                Profile.objects.create(user=user, role=role, block_id=block_id)
            created += 1
            self.stdout.write(f'{user.email}: {role}' + (f' (block {block_id})' if block_id else ''))

        verb = 'Would create' if dry_run else 'Created'
        self.stdout.write(self.style.SUCCESS(f'{verb} {created} profiles'))
