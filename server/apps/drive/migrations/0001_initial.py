import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StorageAccount',
            fields=[
                ('user', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    primary_key=True,
                    related_name='storage_account',
                    serialize=False,
                    to=settings.AUTH_USER_MODEL,
                )),
                ('folder_name', models.CharField(
                    help_text='Directory name under the upload base directory',
                    max_length=150,
                    unique=True,
                    validators=[
                        django.core.validators.RegexValidator(
                            message='Use letters, digits and underscores only.',
                            regex='^[A-Za-z0-9_]+$',
                        ),
                    ],
                )),
                ('quota_mb', models.PositiveIntegerField(
                    default=100,
                    help_text='Storage quota in megabytes (0 = unlimited)',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Storage Account',
                'verbose_name_plural': 'Storage Accounts',
            },
        ),
    ]
