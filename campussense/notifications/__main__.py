from campussense.notifications.service import main

main()
