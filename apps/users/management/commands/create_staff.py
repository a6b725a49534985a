from django.core.management.base import BaseCommand, CommandError

from apps.users.models import Profile
from apps.users.services import AccountCreationFailure, create_identity


class Command(BaseCommand):
    help = 'Create an admin or warden account with an explicit role'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str)
        parser.add_argument('password', type=str)
        parser.add_argument(
            '--role',
            choices=[Profile.Roles.ADMIN, Profile.Roles.WARDEN],
            default=Profile.Roles.WARDEN,
        )
        parser.add_argument(
            '--block',
            type=int,
            help='Hostel block managed by the warden',
        )

    def handle(self, *args, **options):
        role = options['role']
        block_id = options.get('block')

        if role == Profile.Roles.WARDEN and block_id is None:
            raise CommandError('Wardens need a --block')

        try:
            user = create_identity(
                email=options['email'],
                password=options['password'],
                role=role,
                block_id=block_id,
            )
        except AccountCreationFailure as exc:
            raise CommandError(str(exc)) from exc

        scope = f' for block {block_id}' if block_id else ''
        self.stdout.write(
            self.style.SUCCESS(f'Created {role.lower()} {user.email}{scope}')
        )
