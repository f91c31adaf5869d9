# Generated manually for organization hierarchy models

import uuid
from django.db import migrations, models
import django.db.models.deletion


def unit_fields(app_label, model_name):
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('is_active', models.BooleanField(default=True)),
        ('name', models.CharField(max_length=255)),
        ('slug', models.SlugField(max_length=255)),
        ('sort_order', models.PositiveIntegerField(default=0)),
        ('invitation_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
        ('invitation_enabled', models.BooleanField(default=False)),
        ('company', models.ForeignKey(
            help_text='Owning company',
            on_delete=django.db.models.deletion.CASCADE,
            related_name=f'{app_label}_{model_name}_set',
            to='core.company'
        )),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Division',
            fields=unit_fields('organization', 'division'),
            options={
                'ordering': ['sort_order', 'name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Department',
            fields=unit_fields('organization', 'department') + [
                ('division', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='departments', to='organization.division')),
            ],
            options={
                'ordering': ['sort_order', 'name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Team',
            fields=unit_fields('organization', 'team') + [
                ('division', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='teams', to='organization.division')),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='teams', to='organization.department')),
            ],
            options={
                'ordering': ['sort_order', 'name'],
                'abstract': False,
            },
        ),
        migrations.AddConstraint(
            model_name='division',
            constraint=models.UniqueConstraint(fields=('company', 'slug'), name='uniq_division_slug_per_company'),
        ),
        migrations.AddConstraint(
            model_name='department',
            constraint=models.UniqueConstraint(fields=('company', 'slug'), name='uniq_department_slug_per_company'),
        ),
        migrations.AddConstraint(
            model_name='team',
            constraint=models.UniqueConstraint(fields=('company', 'slug'), name='uniq_team_slug_per_company'),
        ),
    ]
