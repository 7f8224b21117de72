from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from zoun_admin.introspector import AdminMeta


class Author(models.Model):
    name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)

    class Meta:
        app_label = "test_app"


class Book(models.Model):
    title = models.CharField(max_length=200)
    isbn = models.CharField(max_length=13, unique=True)
    author = models.ForeignKey(Author, on_delete=models.PROTECT, related_name="books")
    published = models.DateField(null=True, blank=True)
    pages = models.PositiveIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(5000)]
    )

    class Meta:
        app_label = "test_app"

    class AdminMeta(AdminMeta):
        labels = {"isbn": "ISBN"}
        order = ["title", "isbn"]


class Category(models.Model):
    name = models.CharField(max_length=100)
    parent = models.ForeignKey(
        "self", on_delete=models.CASCADE, null=True, blank=True, related_name="children"
    )

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "categories"


class Tag(models.Model):
    name = models.CharField(max_length=50, unique=True)

    class Meta:
        app_label = "test_app"


class Post(models.Model):
    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("published", "Published"),
    ]

    title = models.CharField(max_length=200)
    body = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="posts"
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="posts")
    created_at = models.DateTimeField(auto_now_add=True)
    internal_notes = models.TextField(blank=True)

    class Meta:
        app_label = "test_app"

    class AdminMeta(AdminMeta):
        hidden = ["internal_notes"]


class Document(models.Model):
    """Versioned record used by optimistic locking tests."""

    title = models.CharField(max_length=120)
    version = models.IntegerField(default=0)
    payload = models.BinaryField(null=True, blank=True)

    class Meta:
        app_label = "test_app"


class Profile(models.Model):
    author = models.OneToOneField(Author, on_delete=models.CASCADE, related_name="profile")
    website = models.URLField(blank=True)

    class Meta:
        app_label = "test_app"


class Shelf(models.Model):
    code = models.CharField(max_length=10)
    row = models.PositiveSmallIntegerField()

    class Meta:
        app_label = "test_app"
        unique_together = [("code", "row")]
