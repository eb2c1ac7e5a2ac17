"""Technology trigger table used by the manifest tier."""

from dataclasses import dataclass, field

from shared_types import StackCategory

L = StackCategory.LANGUAGES
F = StackCategory.FRAMEWORKS
D = StackCategory.DATABASES
I = StackCategory.INFRASTRUCTURE  # noqa: E741
T = StackCategory.TOOLS


@dataclass(frozen=True)
class TechTrigger:
    category: StackCategory
    packages: tuple[str, ...] = field(default_factory=tuple)
    files: tuple[str, ...] = field(default_factory=tuple)
    readme_keywords: tuple[str, ...] = field(default_factory=tuple)


TECH_TRIGGERS: dict[str, TechTrigger] = {
    # Languages
    "typescript": TechTrigger(L, packages=("typescript",), files=("tsconfig.json", "*.ts", "*.tsx")),
    "javascript": TechTrigger(L),
    "python": TechTrigger(L, files=("*.py", "pyproject.toml", "requirements.txt", "setup.py", "Pipfile")),
    "rust": TechTrigger(L, files=("Cargo.toml", "*.rs")),
    "go": TechTrigger(L, files=("go.mod", "go.sum", "*.go")),
    "java": TechTrigger(L, files=("pom.xml", "build.gradle", "*.java")),
    "csharp": TechTrigger(L, files=("*.csproj", "*.cs", "*.sln")),
    # Frontend frameworks
    "react": TechTrigger(F, packages=("react", "react-dom")),
    "nextjs": TechTrigger(F, packages=("next",), files=("next.config.js", "next.config.mjs", "next.config.ts")),
    "vue": TechTrigger(F, packages=("vue",), files=("vue.config.js", "nuxt.config.js")),
    "angular": TechTrigger(F, packages=("@angular/core",), files=("angular.json",)),
    "svelte": TechTrigger(F, packages=("svelte",), files=("svelte.config.js",)),
    # Backend frameworks
    "express": TechTrigger(F, packages=("express",)),
    "fastify": TechTrigger(F, packages=("fastify",)),
    "nestjs": TechTrigger(F, packages=("@nestjs/core",)),
    "fastapi": TechTrigger(F, packages=("fastapi",)),
    "django": TechTrigger(F, packages=("django",), files=("manage.py",)),
    "flask": TechTrigger(F, packages=("flask",)),
    # Databases
    "postgresql": TechTrigger(
        D,
        packages=("pg", "postgres", "psycopg2", "psycopg2-binary", "asyncpg"),
        readme_keywords=("postgresql", "postgres"),
    ),
    "mongodb": TechTrigger(D, packages=("mongodb", "mongoose", "pymongo"), readme_keywords=("mongodb", "mongo")),
    "mysql": TechTrigger(D, packages=("mysql", "mysql2", "mysqlclient"), readme_keywords=("mysql",)),
    "redis": TechTrigger(D, packages=("redis", "ioredis"), readme_keywords=("redis",)),
    "sqlite": TechTrigger(D, packages=("sqlite3", "better-sqlite3"), files=("*.sqlite", "*.db")),
    # Infrastructure
    "docker": TechTrigger(I, files=("Dockerfile", "docker-compose.yaml", "docker-compose.yml", ".dockerignore")),
    "kubernetes": TechTrigger(
        I,
        files=("k8s/**/*.yaml", "kubernetes/**/*.yaml", "helm/**/*.yaml"),
        readme_keywords=("kubernetes", "k8s"),
    ),
    "terraform": TechTrigger(I, files=("*.tf", "terraform/**/*.tf")),
    "github-actions": TechTrigger(I, files=(".github/workflows/*.yaml", ".github/workflows/*.yml")),
    "aws": TechTrigger(
        I,
        packages=("@aws-sdk/*", "aws-sdk", "boto3"),
        files=("serverless.yml", "sam.yaml", "template.yaml"),
        readme_keywords=("aws", "amazon web services"),
    ),
    # Build, test, lint, styling
    "vite": TechTrigger(T, packages=("vite",), files=("vite.config.js", "vite.config.ts")),
    "prisma": TechTrigger(T, packages=("prisma", "@prisma/client"), files=("prisma/schema.prisma",)),
    "drizzle": TechTrigger(T, packages=("drizzle-orm",), files=("drizzle.config.ts",)),
    "jest": TechTrigger(T, packages=("jest",), files=("jest.config.js", "jest.config.ts")),
    "vitest": TechTrigger(T, packages=("vitest",), files=("vitest.config.ts",)),
    "playwright": TechTrigger(T, packages=("playwright", "@playwright/test"), files=("playwright.config.ts",)),
    "pytest": TechTrigger(T, packages=("pytest",), files=("pytest.ini", "conftest.py")),
    "eslint": TechTrigger(T, packages=("eslint",), files=(".eslintrc", ".eslintrc.js", ".eslintrc.json", "eslint.config.js")),
    "prettier": TechTrigger(T, packages=("prettier",), files=(".prettierrc", "prettier.config.js")),
    "tailwindcss": TechTrigger(T, packages=("tailwindcss",), files=("tailwind.config.js", "tailwind.config.ts")),
    "graphql": TechTrigger(T, packages=("graphql", "@apollo/client", "apollo-server"), files=("*.graphql",)),
}


def category_for(tech_id: str, default: StackCategory = StackCategory.TOOLS) -> StackCategory:
    trigger = TECH_TRIGGERS.get(tech_id)
    return trigger.category if trigger else default
