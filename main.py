import uvicorn


def main():
    """Main entry point to run the application."""
    uvicorn.run(
        "appointly.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
