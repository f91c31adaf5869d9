# Generated manually for the holidays app

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Holiday',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_active', models.BooleanField(default=True)),
                ('holiday_date', models.DateField(unique=True)),
                ('name', models.CharField(blank=True, max_length=255, null=True)),
                ('is_holiday', models.BooleanField(default=True)),
                ('category', models.CharField(
                    blank=True,
                    choices=[
                        ('national', '國定假日'),
                        ('weekday_off', '平日放假'),
                        ('makeup_workday', '補行上班'),
                        ('weekend', '週末'),
                    ],
                    max_length=32,
                    null=True,
                )),
                ('note', models.TextField(blank=True, null=True)),
                ('source', models.CharField(
                    choices=[('ntpc', 'New Taipei City Open Data')], default='ntpc', max_length=32
                )),
                ('is_workday_override', models.BooleanField(default=False, help_text='True for makeup workdays')),
                ('iso_week', models.PositiveSmallIntegerField(db_index=True)),
                ('iso_week_year', models.PositiveSmallIntegerField(db_index=True)),
            ],
            options={
                'ordering': ['holiday_date'],
                'indexes': [models.Index(fields=['iso_week_year', 'iso_week'], name='holidays_iso_week_idx')],
            },
        ),
    ]
