# Generated manually for weekly report models

import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('organization', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='WeeklyReport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_active', models.BooleanField(default=True)),
                ('work_year', models.PositiveSmallIntegerField()),
                ('work_week', models.PositiveSmallIntegerField()),
                ('status', models.CharField(choices=[('draft', '草稿'), ('submitted', '已送出'), ('locked', '已鎖定')], default='draft', max_length=32)),
                ('summary', models.TextField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, null=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('locked_at', models.DateTimeField(blank=True, null=True)),
                ('company', models.ForeignKey(help_text='Owning company', on_delete=django.db.models.deletion.CASCADE, related_name='weekly_reports_weeklyreport_set', to='core.company')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='weekly_reports', to=settings.AUTH_USER_MODEL)),
                ('division', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='weekly_reports', to='organization.division')),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='weekly_reports', to='organization.department')),
                ('team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='weekly_reports', to='organization.team')),
                ('submitted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='submitted_weekly_reports', to=settings.AUTH_USER_MODEL)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_weekly_reports', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-work_year', '-work_week'],
            },
        ),
        migrations.CreateModel(
            name='WeeklyReportItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_active', models.BooleanField(default=True)),
                ('type', models.CharField(choices=[('current_week', '本週工作'), ('next_week', '下週計畫')], default='current_week', max_length=16)),
                ('sort_order', models.PositiveSmallIntegerField(default=0)),
                ('title', models.CharField(max_length=255)),
                ('content', models.TextField(blank=True, null=True)),
                ('hours_spent', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('planned_hours', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('issue_reference', models.CharField(blank=True, max_length=191, null=True)),
                ('is_billable', models.BooleanField(default=False)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('ended_at', models.DateTimeField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, null=True)),
                ('weekly_report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='weekly_reports.weeklyreport')),
            ],
            options={
                'ordering': ['type', 'sort_order'],
            },
        ),
        migrations.AddConstraint(
            model_name='weeklyreport',
            constraint=models.UniqueConstraint(fields=('company', 'user', 'work_year', 'work_week'), name='uniq_weekly_report_per_user_week'),
        ),
        migrations.AddIndex(
            model_name='weeklyreport',
            index=models.Index(fields=['company', 'status', 'work_year', 'work_week'], name='weekly_repo_status_week_idx'),
        ),
        migrations.AddIndex(
            model_name='weeklyreportitem',
            index=models.Index(fields=['weekly_report', 'type', 'sort_order'], name='weekly_item_report_order_idx'),
        ),
        migrations.AddIndex(
            model_name='weeklyreportitem',
            index=models.Index(fields=['issue_reference'], name='weekly_item_issue_ref_idx'),
        ),
    ]
