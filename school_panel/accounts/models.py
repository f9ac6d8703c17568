from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class CustomUserManager(BaseUserManager):
    """Manager for CustomUser where email is the unique identifier."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError(_('Email is required'))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', CustomUser.Role.PLATFORM_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """
    Login account. Email is the username.

    School staff are plain ``school_user`` accounts whose per-school role lives
    on tenants.TenantMembership; platform roles grant the back office.
    """

    class Role(models.TextChoices):
        PLATFORM_ADMIN = 'platform_admin', _('Platform administrator')
        PLATFORM_SUPPORT = 'platform_support', _('Platform support')
        SCHOOL_USER = 'school_user', _('School user')

    username = None
    first_name = None
    last_name = None
    email = models.EmailField(_('email address'), unique=True)
    full_name = models.CharField(_('full name'), max_length=150, blank=True, default='')

    phone_number = models.CharField(_('phone number'), max_length=20, blank=True, default='')

    role = models.CharField(
        _('role'),
        max_length=20,
        choices=Role.choices,
        default=Role.SCHOOL_USER,
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = CustomUserManager()

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} ({self.get_role_display()})"

    @property
    def is_platform_admin(self):
        return self.is_superuser or self.role == self.Role.PLATFORM_ADMIN

    @property
    def is_platform_staff(self):
        return self.is_platform_admin or self.role == self.Role.PLATFORM_SUPPORT

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(' ')[0] if self.full_name else self.email
