import json

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, Setting, AuditLog
from .utils import create_audit_log


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'phone', 'is_staff', 'is_active', 'last_login', 'created_at']
    list_filter = ['is_staff', 'is_active', 'created_at']
    search_fields = ['username', 'email', 'phone']
    ordering = ['-created_at']
    actions = ['grant_store_admin', 'revoke_store_admin']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Contact', {'fields': ('phone',)}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Contact', {'fields': ('email', 'phone')}),
    )

    def _set_staff(self, request, queryset, is_staff):
        # Superusers keep their access
        users = list(queryset.exclude(is_superuser=True).exclude(is_staff=is_staff))
        for user in users:
            user.is_staff = is_staff
            user.save(update_fields=['is_staff', 'updated_at'])
            create_audit_log(
                request=request,
                action='update',
                model_name='User',
                object_id=str(user.id),
                object_name=user.username,
                object_reference=user.email,
                changes={'is_staff': {'old': not is_staff, 'new': is_staff}}
            )
        return len(users)

    def grant_store_admin(self, request, queryset):
        count = self._set_staff(request, queryset, True)
        self.message_user(request, f"{count} user(s) can now use the back office")
    grant_store_admin.short_description = 'Grant back-office access'

    def revoke_store_admin(self, request, queryset):
        count = self._set_staff(request, queryset, False)
        self.message_user(request, f"{count} user(s) lost back-office access")
    revoke_store_admin.short_description = 'Revoke back-office access'


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value_preview', 'description', 'updated_at']
    search_fields = ['key', 'value', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']

    def value_preview(self, obj):
        if len(obj.value) > 60:
            return obj.value[:57] + '...'
        return obj.value
    value_preview.short_description = 'Value'


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Audit entries are written by the API only"""
    list_display = ['created_at', 'user', 'action', 'model_name', 'object_name', 'object_reference']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'object_id', 'object_name', 'object_reference']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']
    list_select_related = ['user']
    fields = ['created_at', 'user', 'ip_address', 'action', 'model_name', 'object_id', 'object_name',
              'object_reference', 'changes_display']
    readonly_fields = fields

    def changes_display(self, obj):
        return format_html('<pre>{}</pre>', json.dumps(obj.changes, indent=2, sort_keys=True, default=str))
    changes_display.short_description = 'Changes'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
